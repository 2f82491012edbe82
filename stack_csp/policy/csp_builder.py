"""Pure-function CSP rule-mapping utilities."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping


def as_values(values: str | Iterable[str] | None) -> list[str]:
    """Coerce a directive's value(s) to a list; a bare string or scalar is one value."""
    if values is None:
        return []
    if isinstance(values, str) or not isinstance(values, Iterable):
        return [values]
    return list(values)


def merge_rules(
    base: Mapping[str, str | Iterable[str]],
    extra: Mapping[str, str | Iterable[str]],
) -> dict[str, list[str]]:
    """Merge extra directives into base.

    Lists of directives present in both are concatenated, duplicates kept
    (dedup happens at validation time). New directives from extra are
    appended in extra's order.

    Example:
        >>> merge_rules({"default-src": ["self"]}, {"default-src": ["self", "a.com"], "img-src": "b.com"})
        {"default-src": ["self", "self", "a.com"], "img-src": ["b.com"]}
    """
    merged: dict[str, list[str]] = {directive: as_values(values) for directive, values in base.items()}
    for directive, values in extra.items():
        merged.setdefault(directive, []).extend(as_values(values))
    return merged


def diff_rules(
    base: Mapping[str, str | Iterable[str]],
    remove: Mapping[str, str | Iterable[str]],
    normalize: Callable[[str, str], str] | None = None,
) -> dict[str, list[str]]:
    """Remove the listed values from base, directive by directive.

    Only directives already present in base are touched; remaining values
    keep their order. ``normalize(value, directive)`` maps both sides to a
    comparable form before matching.
    """
    def _key(value: str, directive: str) -> str:
        return normalize(value, directive) if normalize else value

    result: dict[str, list[str]] = {directive: as_values(values) for directive, values in base.items()}
    for directive, values in remove.items():
        if directive not in result:
            continue
        drop = {_key(v, directive) for v in as_values(values)}
        result[directive] = [v for v in result[directive] if _key(v, directive) not in drop]
    return result


def build_header_value(directives: Mapping[str, Iterable[str]]) -> str:
    """Build a CSP header value from {directive: [values]}.

    Directives without values are omitted; an empty mapping gives "".

    Example:
        >>> build_header_value({"default-src": ["'self'"], "img-src": ["'self'", "data:"]})
        "default-src 'self';img-src 'self' data:;"
    """
    parts = []
    for directive, values in directives.items():
        values = as_values(values)
        if values:
            parts.append(f"{directive} {' '.join(values)};")
    return "".join(parts)
