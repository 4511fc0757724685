"""
Provides project-level commands. Commands are run via `python setup.py <command> [args]`

Commands available:

- apidoc: regenerate reST docs for inline pydoc comments
- autobuild: watch for changes to the reST files and rebuild the documentation, refreshing
   the browser.
"""

from setuptools import setup, Command

import os


class RunInRootCommand(Command):
    user_options = []

    def initialize_options(self):
        self.cwd = None

    def finalize_options(self):
        self.cwd = os.getcwd()

    def run(self):
        assert os.getcwd() == self.cwd, 'Must be in package root: %s' % self.cwd
        self.runcmd()

    def runcmd(self):
        pass


class ApiDocCommand(RunInRootCommand):
    description = "regenerates the API docs"

    def runcmd(self):
        os.system('"sphinx-apidoc" -f -e -o docs/apidoc src/veadotube')


class AutoBuildCommand(RunInRootCommand):
    description = "watches the docs for changes and rebuilds them, automatically refreshing the browser page"

    def runcmd(self):
        os.system("sphinx-autobuild docs docs/_build/html -B")


setup(
    name='veadotube-connector-py',
    version='0.1.0',
    description='Discovers running veadotube instances and follows their avatar state over websockets.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    python_requires='>=3.8',
    package_dir={'': 'src'},
    packages=['veadotube', 'veadotube.conduit', 'veadotube.config', 'veadotube.connector',
              'veadotube.protocol', 'veadotube.support'],
    package_data={'veadotube.config': ['*.cfg']},
    install_requires=[
        'configobj>=5.0.6',
        'websockets>=11.0',
        'watchdog>=2.1',
    ],
    extras_require={
        'test': [
            'pyhamcrest>=2.0.3',
            'pytest>=7.0',
            'timeout-decorator>=0.5',
        ],
    },
    zip_safe=False,
    cmdclass={
        'apidoc': ApiDocCommand,
        'autobuild': AutoBuildCommand
    }
)
