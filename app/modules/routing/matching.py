import logging
import re

log = logging.getLogger("routing.matching")

def _as_list(value: str | list[str]) -> list[str]:
    return [value] if isinstance(value, str) else list(value)

def match_field(field_value: str | None, condition: str | list[str], operator: str) -> bool:
    """Test one ticket field against a condition value.

    A missing field never matches. ``equals`` needs a single string; the other
    operators accept a list and match when any element does. Invalid
    ``matches`` patterns count as a miss instead of raising.
    """
    if not field_value:
        return False

    if operator == "equals":
        return isinstance(condition, str) and field_value == condition
    if operator == "contains":
        return any(c in field_value for c in _as_list(condition))
    if operator == "in":
        return field_value in _as_list(condition)
    if operator == "matches":
        for pattern in _as_list(condition):
            try:
                if re.search(pattern, field_value, re.IGNORECASE):
                    return True
            except re.error:
                log.debug(f"Ignoring invalid routing pattern {pattern!r}")
        return False
    return False

def match_keywords(content: str, keywords: str | list[str]) -> bool:
    lower_content = (content or "").lower()
    return any(k.lower() in lower_content for k in _as_list(keywords) if k)
