"""Parse and render collector configuration documents."""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Any

import yaml

_STR_TAG = "tag:yaml.org,2002:str"
_MAP_TAG = "tag:yaml.org,2002:map"
_MERGE_TAG = "tag:yaml.org,2002:merge"
_SHORT_BOOLS = frozenset({"y", "Y", "n", "N"})
_TRAILING_DIGITS = re.compile(r"\d*\Z")
_LEADING_DIGITS = re.compile(r"\d*")


class ConfigError(ValueError):
    """Raised when a configuration document cannot be parsed or rendered."""


class _Loader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as text and rejects duplicate keys."""

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen = set()
            for key_node, _ in node.value:
                if not isinstance(key_node, yaml.ScalarNode) or key_node.tag == _MERGE_TAG:
                    continue
                key = self.construct_object(key_node)
                if key in seen:
                    raise yaml.constructor.ConstructorError(
                        None, None, f"mapping key {key!r} already set in map", key_node.start_mark
                    )
                seen.add(key)
        return super().construct_mapping(node, deep=deep)


_Loader.add_constructor(
    "tag:yaml.org,2002:timestamp",
    lambda loader, node: loader.construct_scalar(node),
)


def _kind(value: Any) -> int:
    if isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return 2
    if isinstance(value, float):
        return 14
    if isinstance(value, str):
        return 24
    return 25


_NUMERIC_KINDS = (1, 2, 14)


def _digits_value(start: int, digits: str) -> int:
    value = start
    for digit in digits:
        value = value * 10 + int(digit)
    return value


def _key_less(a: Any, b: Any) -> bool:
    """Natural ordering of mapping keys: numbers by value, digit runs numerically."""
    ak, bk = _kind(a), _kind(b)
    if ak in _NUMERIC_KINDS and bk in _NUMERIC_KINDS:
        af, bf = float(a), float(b)
        if af != bf:
            return af < bf
        if ak != bk:
            return ak < bk
        return a < b
    if ak != 24 or bk != 24:
        return ak < bk
    for i, (ca, cb) in enumerate(zip(a, b)):
        if ca == cb:
            continue
        a_letter, b_letter = ca.isalpha(), cb.isalpha()
        if a_letter and b_letter:
            return ca < cb
        if a_letter or b_letter:
            return b_letter
        start = 0
        if ca == "0" or cb == "0":
            preceding = _TRAILING_DIGITS.search(a[:i]).group()
            if preceding.strip("0"):
                start = 1
        a_digits = _LEADING_DIGITS.match(a, i).group()
        b_digits = _LEADING_DIGITS.match(b, i).group()
        an, bn = _digits_value(start, a_digits), _digits_value(start, b_digits)
        if an != bn:
            return an < bn
        if len(a_digits) != len(b_digits):
            return len(a_digits) < len(b_digits)
        return ca < cb
    return len(a) < len(b)


def _key_cmp(a: Any, b: Any) -> int:
    if _key_less(a, b):
        return -1
    if _key_less(b, a):
        return 1
    return 0


_ITEM_ORDER = cmp_to_key(lambda x, y: _key_cmp(x[0], y[0]))


class _Dumper(yaml.SafeDumper):
    """Safe dumper with naturally sorted keys and double-quoted ambiguous strings."""


def _represent_dict(dumper: _Dumper, data: dict) -> yaml.Node:
    return dumper.represent_mapping(_MAP_TAG, sorted(data.items(), key=_ITEM_ORDER))


def _represent_str(dumper: _Dumper, value: str) -> yaml.Node:
    style = None
    if "\n" in value:
        style = "|"
    elif value in _SHORT_BOOLS or dumper.resolve(yaml.ScalarNode, value, (True, False)) != _STR_TAG:
        style = '"'
    return dumper.represent_scalar(_STR_TAG, value, style=style)


_Dumper.add_representer(dict, _represent_dict)
_Dumper.add_representer(str, _represent_str)
_Dumper.add_representer(tuple, _Dumper.represent_list)


def config_from_string(text: str) -> dict:
    """Parse a configuration document into a mapping; an empty document is empty."""
    try:
        data = yaml.load(text, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse configuration: {exc}") from exc
    except TypeError as exc:
        raise ConfigError(f"failed to parse configuration: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"failed to parse configuration: expected a mapping, got {type(data).__name__}"
        )
    return data


def config_to_string(cfg: dict) -> str:
    """Render a configuration mapping as a block-style document with sorted keys."""
    try:
        return yaml.dump(
            cfg,
            Dumper=_Dumper,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to marshal configuration: {exc}") from exc


def config_to_string_without_nulls(cfg: dict) -> str:
    """Render a configuration mapping, dropping the explicit null markers."""
    return config_to_string(cfg).replace(" null", "")