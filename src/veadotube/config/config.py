"""
Loading of layered configobj configuration files.

A configuration named "veadotube" is assembled from these files, later files overriding earlier ones:

- veadotube.default.cfg, beside the schema
- veadotube.<os>.cfg, the platform specialization (windows, linux, osx)
- ~/veadotube.cfg, the user override
- veadotube.cfg in the local directory

The result is validated against veadotube.schema.cfg, which also supplies the defaults for missing values.
"""
import logging
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

logger = logging.getLogger(__name__)

# The default extension for configuration files
config_extension = '.cfg'

# The directory holding the user override
user_config_directory = '~'

# The directory holding the configuration files shipped with the package
package_config_directory = os.path.dirname(__file__)


def config_flavor(name, flavor=None):
    """
    >>> config_flavor('veadotube', 'schema')
    'veadotube.schema'
    >>> config_flavor('veadotube')
    'veadotube'
    """
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in a directory.
    """
    config_file = os.path.join(directory or '.', name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True, **kwargs):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    options = dict(interpolation='Template', file_error=must_exist)
    options.update(kwargs)
    try:
        return ConfigObj(file, **options) if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None, **kwargs) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name.
    :param name:    The name of the base configuration
    :param subpart: The name of the specialization.
    :return: The ConfigObj for the configuration file, empty when the file does not exist.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    return load_config_file_base(file, False, **kwargs)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def load_config(name, directory, local_directory=None):
    """
    Loads all the configuration files that relate to the given name, flattens them into a single configuration
    and validates it against the schema.
    :param name: the base name of the configuration files
    :param directory: the location of the default, platform and schema files
    :param local_directory: the location of the local override, the current directory when not given
    :return: the validated ConfigObj, with values converted to the types given in the schema
    raises ConfigObjError if the configuration does not validate
    """
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_config = load_config_file_base(
        config_filename(name, os.path.expanduser(user_config_directory)), must_exist=False)
    local_config = config_flavor_file(name, local_directory or os.getcwd())
    config = ConfigObj()
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)

    config.configspec = config_flavor_file(name, directory, 'schema', interpolation=False, _inspec=True)
    result = config.validate(Validator())
    if result is not True:
        failures = ['.'.join(sections + [key or '']) for sections, key, _ in flatten_errors(config, result)]
        raise ConfigObjError("the config file %s failed validation %s" % (name, ', '.join(failures)))
    logger.debug("loaded configuration %s" % name)
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:        An iterable that lists the names of the config to resolve
    :return: The configuration object identified by the path, or None
    """
    for p in path:    # lookup specific section
        conf = conf.get(p, None)
        if conf is None:
            return
    return conf


def apply_conf_path(conf: Section, name_parts, target):
    """
    Applies a configuration path to a given target object
    :param conf:        The root configuration object
    :param name_parts:  The path of the configuration to apply
    :param target:      The target object that receives the configured values
    """
    conf = fetch_conf_path(conf, name_parts)
    if conf:
        apply_conf(conf, target)


def apply_conf(conf: Section, target):
    """
    Applies the attributes contained in a configuration object to a target object.
    It does this by iterating over the items in the configuration and setting any attributes with the same name.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)
