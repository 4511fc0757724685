"""
Best effort conversion of text into the most specific value it represents.

The veadotube protocol and its instance files are JSON most of the time, but frames can carry a channel prefix
and files can be caught half written. A SafeParser runs a priority-ordered chain of strategies over the text
and returns the first value a strategy produces. Strategies that cannot handle the text, or fail while
trying, fall through to the next one. If none succeed the trimmed text is returned, so parsing never raises.

>>> parser = SafeParser()
>>> parser.parse("42")
42
>>> parser.parse("{foo:1,bar:'x'}")
{'foo': 1, 'bar': 'x'}
>>> parser.parse("a,b,3")
['a', 'b', 3]
>>> parser.parse("nodes:[1, 2]")
{'nodes': [1, 2]}
>>> parser.names()[:3]
['json-strict', 'prefixed-json', 'json-sloppy']
"""
import json
import logging
import re
from datetime import datetime, timezone
from urllib.parse import urlsplit

from veadotube.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)

number_pattern = re.compile(r'^-?\d*\.?\d+([eE][+-]?\d+)?$')
integer_pattern = re.compile(r'^-?\d+$')
date_pattern = re.compile(r'^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2}(\.\d{3})?Z?)?$')
scheme_pattern = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*:')

truthy = ('true', 'yes', 'on', '1')
falsy = ('false', 'no', 'off', '0')
null_like = ('null', 'undefined', 'none')


class ParseResult(CommonEqualityMixin, StringerMixin):
    """ The outcome of parsing a value, with the name of the strategy that produced it. """
    def __init__(self, value, type, success=True):
        self.success = success
        self.value = value
        self.type = type


class ParseStrategy:
    """
    One way of interpreting text. Lower priority values run first.
    """
    name = None
    priority = 0

    def can_parse(self, text) -> bool:
        raise NotImplementedError

    def parse(self, text):
        """
        Converts the text. Raising any exception makes the parser move on to the next strategy.
        """
        raise NotImplementedError


class FunctionStrategy(ParseStrategy):
    """
    A strategy built from two callables, for registering protocol specific parsing without subclassing.
    """
    def __init__(self, name, priority, can_parse, parse):
        self.name = name
        self.priority = priority
        self._can_parse = can_parse
        self._parse = parse

    def can_parse(self, text):
        return self._can_parse(text)

    def parse(self, text):
        return self._parse(text)


class StrictJsonStrategy(ParseStrategy):
    name = 'json-strict'
    priority = 1

    def can_parse(self, text):
        return (text.startswith('{') and text.endswith('}')) or \
               (text.startswith('[') and text.endswith(']'))

    def parse(self, text):
        return json.loads(text)


class RecursiveStrategy(ParseStrategy):
    """ A strategy that hands parts of the text back to the parser it is registered with. """
    def __init__(self, parser):
        self.parser = parser


class PrefixedJsonStrategy(RecursiveStrategy):
    """
    Parses "prefix:{...}" or "prefix:[...]" into {prefix: value}, parsing the body recursively.
    The body is always shorter than the text, so the recursion ends.
    """
    name = 'prefixed-json'
    priority = 1.5

    def can_parse(self, text):
        colon = text.find(':')
        if colon == -1:
            return False
        body = text[colon + 1:].strip()
        return body.startswith('{') or body.startswith('[')

    def parse(self, text):
        prefix, body = text.split(':', 1)
        return {prefix.strip(): self.parser.parse(body.strip())}


class SloppyJsonStrategy(ParseStrategy):
    """
    Repairs common deviations from JSON with a fixed sequence of rewrites, then parses the result as JSON.

    The rewrites are heuristics, not a grammar. Nested or adversarial input can be mis-repaired, in which case
    json.loads fails and the next strategy is tried.

    >>> SloppyJsonStrategy.repair("{a: 'x', b: yes, c: true,}")
    '{"a": "x", "b": "yes", "c": true}'
    >>> SloppyJsonStrategy.repair('"a": 1, "b": 2')
    '{"a": 1, "b": 2}'
    """
    name = 'json-sloppy'
    priority = 2

    unquoted_key = re.compile(r'([{,]\s*)([a-zA-Z0-9_$]+)\s*:')
    single_quoted_value = re.compile(r":\s*'([^']*)'")
    bare_value = re.compile(r':\s*([a-zA-Z][a-zA-Z0-9_]*|true|false|null)\s*([,}])')
    trailing_comma = re.compile(r',\s*([}\]])')

    def can_parse(self, text):
        return '{' in text or '[' in text or (':' in text and ',' in text)

    def parse(self, text):
        return json.loads(self.repair(text))

    @classmethod
    def repair(cls, text):
        fixed = cls.unquoted_key.sub(r'\1"\2":', text)
        fixed = cls.single_quoted_value.sub(r': "\1"', fixed)
        fixed = cls.bare_value.sub(cls._quote_bare_value, fixed)
        fixed = cls.trailing_comma.sub(r'\1', fixed)
        if ':' in fixed and not fixed.strip().startswith(('{', '[')):
            fixed = '{' + fixed + '}'
        return fixed

    @staticmethod
    def _quote_bare_value(match):
        value, end = match.group(1), match.group(2)
        if value.lower() in ('true', 'false', 'null') or number_pattern.match(value):
            return ': %s%s' % (value, end)
        return ': "%s"%s' % (value, end)


class NumberStrategy(ParseStrategy):
    name = 'number'
    priority = 3

    def can_parse(self, text):
        return number_pattern.match(text) is not None

    def parse(self, text):
        return int(text) if integer_pattern.match(text) else float(text)


class BooleanStrategy(ParseStrategy):
    name = 'boolean'
    priority = 4

    def can_parse(self, text):
        return text.lower() in truthy + falsy

    def parse(self, text):
        return text.lower() in truthy


class DateStrategy(ParseStrategy):
    """
    ISO-8601 dates and date-times. A date alone, or a trailing Z, is UTC. A date-time without Z is naive.
    """
    name = 'date-iso'
    priority = 5

    def can_parse(self, text):
        return date_pattern.match(text) is not None

    def parse(self, text):
        if 'T' not in text:
            return datetime.strptime(text, '%Y-%m-%d').replace(tzinfo=timezone.utc)
        utc = text.endswith('Z')
        value = datetime.fromisoformat(text[:-1] if utc else text)
        return value.replace(tzinfo=timezone.utc) if utc else value


class UrlStrategy(ParseStrategy):
    """ An absolute URL: a scheme followed by a non-empty remainder. """
    name = 'url'
    priority = 6

    def can_parse(self, text):
        if not scheme_pattern.match(text) or any(c.isspace() for c in text):
            return False
        url = urlsplit(text)
        return bool(url.scheme) and bool(url.netloc or url.path)

    def parse(self, text):
        return urlsplit(text)


class CsvArrayStrategy(RecursiveStrategy):
    name = 'csv-array'
    priority = 7

    def can_parse(self, text):
        return ',' in text and '{' not in text and '[' not in text

    def parse(self, text):
        return [self.parser.parse(item.strip()) for item in text.split(',')]


class NullStrategy(ParseStrategy):
    """ null, undefined and none all map to None. """
    name = 'null'
    priority = 8

    def can_parse(self, text):
        return text.lower() in null_like

    def parse(self, text):
        return None


def default_strategies(parser):
    return [
        StrictJsonStrategy(),
        PrefixedJsonStrategy(parser),
        SloppyJsonStrategy(),
        NumberStrategy(),
        BooleanStrategy(),
        DateStrategy(),
        UrlStrategy(),
        CsvArrayStrategy(parser),
        NullStrategy(),
    ]


class SafeParser:
    """
    A registry of parse strategies, tried in priority order.

    One parser is created by the client and shared with the components that decode text, so strategies
    registered at runtime apply everywhere.

    :param strategies: the initial strategies. When None, the default chain is registered.
    :param max_depth: how deeply strategies may recurse into the parser before text is returned unparsed.
    """
    def __init__(self, strategies=None, max_depth=32):
        self._strategies = []
        self.max_depth = max_depth
        self._depth = 0
        for strategy in (default_strategies(self) if strategies is None else strategies):
            self.register(strategy)

    def register(self, strategy: ParseStrategy):
        """ adds the strategy, keeping the chain sorted by priority. Equal priorities keep registration order. """
        self._strategies.append(strategy)
        self._strategies.sort(key=lambda s: s.priority)
        return self

    def remove(self, name) -> bool:
        for strategy in self._strategies:
            if strategy.name == name:
                self._strategies.remove(strategy)
                return True
        return False

    def names(self):
        return [s.name for s in self._strategies]

    def parse(self, value):
        return self.parse_with_info(value).value

    def parse_with_info(self, value) -> ParseResult:
        if not isinstance(value, str):
            return ParseResult(value, type(value).__name__)

        text = value.strip()
        if not text:
            return ParseResult(text, 'string')
        if self._depth >= self.max_depth:
            logger.debug("parse depth %d reached, returning text as-is" % self._depth)
            return ParseResult(text, 'string')

        self._depth += 1
        try:
            for strategy in tuple(self._strategies):
                result = self._attempt(strategy, text)
                if result is not None:
                    return result
        finally:
            self._depth -= 1
        return ParseResult(text, 'string')

    @staticmethod
    def _attempt(strategy, text):
        try:
            if strategy.can_parse(text):
                return ParseResult(strategy.parse(text), strategy.name)
        except Exception as e:
            logger.debug("parser '%s' failed: %s" % (strategy.name, e))
        return None
