"""Pure transformation functions.

Every function takes ``(value, config, context)`` and returns the new
value. Inputs are coerced permissively (``to_text``, ``to_number``) rather
than rejected; NaN propagates as a result. Functions may raise on
genuinely broken config (e.g. an invalid regex); the executor turns that
into an unchanged value.
"""

import json
import logging
import math
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fieldmap.paths import get_value, set_value

from .context import TransformContext

logger = logging.getLogger(__name__)


# ── Coercion ─────────────────────────────────────────────


def to_text(value: Any) -> str:
    """Permissive string conversion for JSON values."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, list):
        return ",".join(to_text(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


# Spellings float() accepts but Number() does not; "Infinity" stays valid
_NON_NUMERIC_WORDS = ("inf", "nan", "infinity")


def to_number(value: Any) -> Any:
    """Permissive numeric conversion; unparsable input becomes NaN."""
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return value
    if value is None:
        return math.nan
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        unsigned = text.lstrip("+-")
        if "_" in text or (
            unsigned.lower() in _NON_NUMERIC_WORDS and unsigned != "Infinity"
        ):
            return math.nan
        if text[:2].lower() in ("0x", "0o", "0b"):
            try:
                return int(text, 0)
            except ValueError:
                return math.nan
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def to_bool(value: Any) -> bool:
    """Truthiness with common string spellings of false."""
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0", "no", "off")
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def is_finite(number: Any) -> bool:
    return isinstance(number, (int, float)) and math.isfinite(number)


def half_up(number: Any, precision: int = 0) -> Any:
    """Round half toward positive infinity, as chart labels expect."""
    if not is_finite(number):
        return number
    factor = 10 ** precision
    rounded = math.floor(number * factor + 0.5) / factor
    return int(rounded) if precision <= 0 else rounded


def _int_or_same(fn, number: Any) -> Any:
    return fn(number) if is_finite(number) else number


def _numeric_config(config: dict, key: str, default: Any) -> Any:
    raw = config.get(key)
    if raw is None or raw == "":
        return default
    number = to_number(raw)
    return default if not is_finite(number) else number


# ── Text ─────────────────────────────────────────────────


def direct(value: Any, config: dict, context: TransformContext) -> Any:
    return value


def uppercase(value: Any, config: dict, context: TransformContext) -> Any:
    return to_text(value).upper()


def lowercase(value: Any, config: dict, context: TransformContext) -> Any:
    return to_text(value).lower()


def capitalize(value: Any, config: dict, context: TransformContext) -> Any:
    text = to_text(value)
    return text[:1].upper() + text[1:].lower()


def trim(value: Any, config: dict, context: TransformContext) -> Any:
    return to_text(value).strip()


def substring(value: Any, config: dict, context: TransformContext) -> Any:
    text = to_text(value)
    start = max(0, int(_numeric_config(config, "start", 0)))
    length = _numeric_config(config, "length", 0)
    if not length:
        return text[start:]
    end = max(0, start + int(length))
    if end < start:
        start, end = end, start
    return text[start:end]


def replace(value: Any, config: dict, context: TransformContext) -> Any:
    text = to_text(value)
    find = to_text(config.get("find", ""))
    replacement = to_text(config.get("replace", ""))
    if config.get("replaceAll", True) is False:
        return text.replace(find, replacement, 1)
    return text.replace(find, replacement)


_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def compile_pattern(pattern: str, flags: str = "") -> re.Pattern:
    """Compile a pattern with JS-style flag letters (g, u, y are ignored)."""
    compiled_flags = 0
    for letter in flags or "":
        compiled_flags |= _REGEX_FLAGS.get(letter, 0)
    return re.compile(pattern, compiled_flags)


def regex_extract(value: Any, config: dict, context: TransformContext) -> Any:
    pattern = config.get("pattern")
    if not pattern:
        return value
    regex = compile_pattern(str(pattern), str(config.get("flags") or ""))
    group = int(_numeric_config(config, "group", 0))

    match = regex.search(to_text(value))
    if match is None:
        return ""
    extracted = match.group(group)
    return extracted if extracted is not None else ""


_PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")


def string_format(value: Any, config: dict, context: TransformContext) -> Any:
    template = config.get("template")
    if not template:
        return value

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        if name == "value":
            return to_text(value)
        if name in ("now", "date"):
            return datetime.now(timezone.utc).isoformat()
        if name == "index":
            return str(context.index if context.index is not None else 0)
        if name == "uuid":
            return str(uuid.uuid4())
        if context.fields is not None:
            resolved = get_value(context.fields, name)
            if resolved is not None:
                return to_text(resolved)
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_substitute, str(template))


def split(value: Any, config: dict, context: TransformContext) -> Any:
    text = to_text(value)
    delimiter = config.get("delimiter")
    if delimiter is None:
        delimiter = ","
    parts = list(text) if delimiter == "" else text.split(str(delimiter))
    limit = _numeric_config(config, "limit", None)
    if limit is not None:
        parts = parts[: max(0, int(limit))]
    return parts


def length(value: Any, config: dict, context: TransformContext) -> Any:
    if isinstance(value, (list, dict)):
        return len(value)
    return len(to_text(value))


def is_empty(value: Any, config: dict, context: TransformContext) -> Any:
    return value is None or value == "" or value == [] or value == {}


def contains(value: Any, config: dict, context: TransformContext) -> Any:
    search = to_text(config.get("search", config.get("value", "")))
    text = to_text(value)
    if config.get("caseSensitive", True) is False:
        return search.lower() in text.lower()
    return search in text


# ── Numbers ──────────────────────────────────────────────


def parse_number(value: Any, config: dict, context: TransformContext) -> Any:
    return to_number(value)


def round_number(value: Any, config: dict, context: TransformContext) -> Any:
    precision = int(_numeric_config(config, "precision", 0))
    return half_up(to_number(value), precision)


def floor(value: Any, config: dict, context: TransformContext) -> Any:
    return _int_or_same(math.floor, to_number(value))


def ceil(value: Any, config: dict, context: TransformContext) -> Any:
    return _int_or_same(math.ceil, to_number(value))


def absolute(value: Any, config: dict, context: TransformContext) -> Any:
    return abs(to_number(value))


def _power(number: float, operand: float) -> float:
    """math.pow with NaN/Infinity results instead of exceptions."""
    try:
        return math.pow(number, operand)
    except ValueError:
        # Negative base with fractional exponent, or zero to a negative power
        return math.inf if number == 0 else math.nan
    except OverflowError:
        odd_exponent = float(operand).is_integer() and int(operand) % 2 == 1
        return -math.inf if number < 0 and odd_exponent else math.inf


def math_operation(value: Any, config: dict, context: TransformContext) -> Any:
    number = to_number(value)
    operation = config.get("operation", "add")
    operand = to_number(config.get("operand", config.get("value", 0)))

    if operation == "sqrt":
        return math.sqrt(number) if is_finite(number) and number >= 0 else math.nan
    if operation == "abs":
        return abs(number)
    if operation == "add":
        return number + operand
    if operation == "subtract":
        return number - operand
    if operation == "multiply":
        return number * operand
    if operation == "divide":
        return number / operand if operand else 0
    if operation == "modulo":
        return math.fmod(number, operand) if operand else 0
    if operation == "power":
        return _power(number, operand)

    logger.warning(f"Unknown math operation: {operation}")
    return number


def _group_digits(number: float, decimals: int, separator: bool) -> str:
    return f"{number:,.{decimals}f}" if separator else f"{number:.{decimals}f}"


def format_number(value: Any, config: dict, context: TransformContext) -> Any:
    number = to_number(value)
    if not is_finite(number):
        return value
    decimals = max(0, int(_numeric_config(config, "decimals", 2)))
    formatted = _group_digits(
        number, decimals, config.get("thousandSeparator", True) is not False
    )
    return f"{config.get('prefix') or ''}{formatted}{config.get('suffix') or ''}"


_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "CAD": "CA$"}


def currency(value: Any, config: dict, context: TransformContext) -> Any:
    number = to_number(value)
    if not is_finite(number):
        return value
    code = str(config.get("currency") or "USD").upper()
    decimals = max(0, int(_numeric_config(config, "decimals", 2)))
    formatted = _group_digits(abs(number), decimals, True)
    sign = "-" if number < 0 else ""
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {formatted}"
    return f"{sign}{symbol}{formatted}"


def is_positive(value: Any, config: dict, context: TransformContext) -> Any:
    return to_number(value) > 0


def is_zero(value: Any, config: dict, context: TransformContext) -> Any:
    return to_number(value) == 0


# ── Conversion / boolean ─────────────────────────────────


def to_string(value: Any, config: dict, context: TransformContext) -> Any:
    return to_text(value)


def to_number_flag(value: Any, config: dict, context: TransformContext) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    return to_number(value)


def invert(value: Any, config: dict, context: TransformContext) -> Any:
    return not to_bool(value)


def yes_no(value: Any, config: dict, context: TransformContext) -> Any:
    if to_bool(value):
        return config.get("trueLabel", "Yes")
    return config.get("falseLabel", "No")


def custom_boolean(value: Any, config: dict, context: TransformContext) -> Any:
    if to_bool(value):
        return config.get("trueValue", "true")
    return config.get("falseValue", "false")


def lookup(value: Any, config: dict, context: TransformContext) -> Any:
    mappings = config.get("mappings", config.get("lookupTable")) or {}
    if isinstance(mappings, str):
        mappings = json.loads(mappings)
    default = config.get("defaultValue")
    key = to_text(value)
    if isinstance(mappings, dict) and key in mappings:
        return mappings[key]
    return default if default is not None else ""


# ── Dates ────────────────────────────────────────────────

_FALLBACK_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%Y/%m/%d",
    "%d %b %Y",
    "%b %d, %Y",
    "%a, %d %b %Y %H:%M:%S %z",
)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse ISO strings, common date spellings and epoch milliseconds.

    Naive results are treated as UTC.
    """
    parsed: Optional[datetime] = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return None
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _FALLBACK_DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_DATE_FORMATS = {
    "YYYY-MM-DD": "%Y-%m-%d",
    "MM/DD/YYYY": "%m/%d/%Y",
    "DD/MM/YYYY": "%d/%m/%Y",
    "MMM DD, YYYY": "%b %d, %Y",
    "TIME": "%H:%M:%S",
}


def date_format(value: Any, config: dict, context: TransformContext) -> Any:
    parsed = parse_date(value)
    if parsed is None:
        return to_text(value)
    output_format = str(config.get("outputFormat") or "ISO")
    if output_format == "ISO":
        return parsed.isoformat()
    if output_format in _DATE_FORMATS:
        return parsed.strftime(_DATE_FORMATS[output_format])
    if "%" in output_format:
        return parsed.strftime(output_format)
    return parsed.isoformat()


_RELATIVE_UNITS = (
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
)


def relative_time(value: Any, config: dict, context: TransformContext) -> Any:
    parsed = parse_date(value)
    if parsed is None:
        return to_text(value)
    delta = (datetime.now(timezone.utc) - parsed).total_seconds()
    seconds = abs(delta)
    if seconds < 45:
        return "just now"
    for unit, size in _RELATIVE_UNITS:
        if seconds >= size:
            amount = int(seconds // size)
            label = f"{amount} {unit}{'' if amount == 1 else 's'}"
            return f"{label} ago" if delta >= 0 else f"in {label}"
    return "just now"


def timestamp(value: Any, config: dict, context: TransformContext) -> Any:
    parsed = parse_date(value)
    if parsed is None:
        return math.nan
    return int(parsed.timestamp() * 1000)


def day_of_week(value: Any, config: dict, context: TransformContext) -> Any:
    parsed = parse_date(value)
    # Sunday is 0
    return (parsed.weekday() + 1) % 7 if parsed else math.nan


def month(value: Any, config: dict, context: TransformContext) -> Any:
    parsed = parse_date(value)
    return parsed.month if parsed else math.nan


def year(value: Any, config: dict, context: TransformContext) -> Any:
    parsed = parse_date(value)
    return parsed.year if parsed else math.nan


# ── Arrays ───────────────────────────────────────────────


def join(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    delimiter = config.get("delimiter")
    if delimiter is None:
        delimiter = ","
    return str(delimiter).join(to_text(item) for item in value)


def first(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    return value[0] if value else None


def last(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    return value[-1] if value else None


def count(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    return len(value)


def _numbers(value: list, config: dict) -> list:
    field = config.get("field")
    numbers = []
    for item in value:
        raw = get_value(item, field) if field else item
        number = to_number(raw)
        if is_finite(number):
            numbers.append(number)
    return numbers


def total(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    return sum(_numbers(value, config))


def average(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    numbers = _numbers(value, config)
    return sum(numbers) / len(numbers) if numbers else 0


def minimum(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    numbers = _numbers(value, config)
    return min(numbers) if numbers else None


def maximum(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    numbers = _numbers(value, config)
    return max(numbers) if numbers else None


def evaluate_condition(value: Any, operator: str, compare_value: Any) -> bool:
    """Evaluate a filter condition; unknown operators never match."""
    if operator == "equals":
        return value == compare_value
    if operator == "not_equals":
        return value != compare_value
    if operator == "contains":
        return to_text(compare_value) in to_text(value)
    if operator == "starts_with":
        return to_text(value).startswith(to_text(compare_value))
    if operator == "ends_with":
        return to_text(value).endswith(to_text(compare_value))
    if operator in (
        "greater_than",
        "less_than",
        "greater_than_or_equal",
        "less_than_or_equal",
    ):
        left, right = to_number(value), to_number(compare_value)
        if not isinstance(left, (int, float)) or not isinstance(right, (int, float)):
            return False
        if operator == "greater_than":
            return left > right
        if operator == "less_than":
            return left < right
        if operator == "greater_than_or_equal":
            return left >= right
        return left <= right
    if operator == "in":
        return isinstance(compare_value, list) and value in compare_value
    if operator == "not_in":
        return isinstance(compare_value, list) and value not in compare_value
    if operator == "regex":
        try:
            return re.search(to_text(compare_value), to_text(value)) is not None
        except re.error:
            return False
    if operator == "is_empty":
        return value is None or value == "" or value == []
    if operator == "is_not_empty":
        return not (value is None or value == "" or value == [])
    return False


def filter_items(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    field = config.get("field")
    operator = config.get("operator", "equals")
    compare_value = config.get("value")
    return [
        item
        for item in value
        if evaluate_condition(
            get_value(item, field) if field else item, operator, compare_value
        )
    ]


def _sort_key(value: Any) -> tuple:
    if isinstance(value, bool):
        return (0, int(value), "")
    if isinstance(value, (int, float)) and not math.isnan(value):
        return (0, value, "")
    if isinstance(value, str):
        return (1, 0, value)
    return (2, 0, "")


def sort_items(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    field = config.get("field")
    return sorted(
        value,
        key=lambda item: _sort_key(get_value(item, field) if field else item),
        reverse=config.get("order") == "desc",
    )


def map_items(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    mappings = config.get("mappings") or {}
    mapped = []
    for item in value:
        result: Any = {}
        for target_field, source_field in mappings.items():
            result = set_value(result, target_field, get_value(item, source_field))
        mapped.append(result)
    return mapped


def unique(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    seen: set[str] = set()
    deduped = []
    for item in value:
        key = json.dumps(item, sort_keys=True, default=str)
        if key not in seen:
            seen.add(key)
            deduped.append(item)
    return deduped


def limit(value: Any, config: dict, context: TransformContext) -> Any:
    if not isinstance(value, list):
        return value
    size = int(_numeric_config(config, "limit", 0)) or 10
    return value[: max(0, size)]
