"""Catalog of transformations offered per source/target value kind.

Pure metadata for pickers and validation UIs. The executor does not
enforce these categories at runtime.
"""

from typing import Union

from .schemas import TransformDefinition, ValueKind


def _t(id: str, name: str, description: str, icon: str, category: str) -> TransformDefinition:
    return TransformDefinition(
        id=id, name=name, description=description, icon=icon, category=category
    )


# Offered for every source/target pair
AI_TRANSFORM = _t(
    "ai-transform", "AI Transform",
    "Use an LLM to transform data", "predictive-analysis", "advanced",
)

TRANSFORMATIONS: dict[str, dict[str, list[TransformDefinition]]] = {
    "string": {
        "string": [
            _t("direct", "Direct Copy", "Copy value as-is", "arrow-right", "basic"),
            _t("uppercase", "Uppercase", "Convert to uppercase", "font", "text"),
            _t("lowercase", "Lowercase", "Convert to lowercase", "font", "text"),
            _t("capitalize", "Capitalize", "Capitalize first letter", "font", "text"),
            _t("trim", "Trim", "Remove whitespace", "clean", "text"),
            _t("substring", "Substring", "Extract part of text", "cut", "text"),
            _t("replace", "Find & Replace", "Replace text", "search-text", "text"),
            _t("lookup", "Lookup Table", "Map values through a table", "search", "text"),
            _t("regex-extract", "Regex Extract", "Extract using regex", "filter", "advanced"),
            _t("string-format", "Format Template", "Use template string", "code-block", "advanced"),
        ],
        "number": [
            _t("parse-number", "Parse as Number", "Convert to number", "numerical", "conversion"),
            _t("length", "String Length", "Get text length", "horizontal-bar-chart", "analysis"),
        ],
        "boolean": [
            _t("is-empty", "Is Empty?", "Check if empty", "help", "validation"),
            _t("contains", "Contains?", "Check for text", "search", "validation"),
        ],
        "array": [
            _t("split", "Split Text", "Split into array", "split-columns", "conversion"),
        ],
    },
    "number": {
        "number": [
            _t("direct", "Direct Copy", "Copy value as-is", "arrow-right", "basic"),
            _t("round", "Round", "Round to decimal places", "numerical", "math"),
            _t("floor", "Floor", "Round down", "arrow-down", "math"),
            _t("ceil", "Ceiling", "Round up", "arrow-up", "math"),
            _t("abs", "Absolute", "Remove negative", "plus", "math"),
            _t("math-operation", "Math Operation", "Apply calculation", "calculator", "math"),
        ],
        "string": [
            _t("to-string", "To String", "Convert to text", "font", "conversion"),
            _t("format-number", "Format Number", "Format with separators", "numerical", "formatting"),
            _t("currency", "Currency", "Format as currency", "dollar", "formatting"),
        ],
        "boolean": [
            _t("is-positive", "Is Positive?", "Check if > 0", "chevron-right", "validation"),
            _t("is-zero", "Is Zero?", "Check if = 0", "equals", "validation"),
        ],
    },
    "date": {
        "date": [
            _t("direct", "Direct Copy", "Copy value as-is", "arrow-right", "basic"),
            _t("date-format", "Format Date", "Change date format", "calendar", "formatting"),
        ],
        "string": [
            _t("date-format", "Format Date", "Format as string", "calendar", "formatting"),
            _t("relative-time", "Relative Time", 'e.g., "2 days ago"', "time", "formatting"),
        ],
        "number": [
            _t("timestamp", "Timestamp", "Unix timestamp", "time", "conversion"),
            _t("day-of-week", "Day of Week", "Get day number", "calendar", "extraction"),
            _t("month", "Month", "Get month number", "calendar", "extraction"),
            _t("year", "Year", "Get year", "calendar", "extraction"),
        ],
    },
    "boolean": {
        "boolean": [
            _t("direct", "Direct Copy", "Copy value as-is", "arrow-right", "basic"),
            _t("invert", "Invert", "Flip true/false", "swap-horizontal", "logic"),
        ],
        "string": [
            _t("to-string", "To String", "Convert to text", "font", "conversion"),
            _t("yes-no", "Yes/No", "Convert to Yes/No", "font", "formatting"),
            _t("custom-boolean", "Custom Format", "Custom true/false text", "font", "formatting"),
        ],
        "number": [
            _t("to-number", "To Number", "1 or 0", "numerical", "conversion"),
        ],
    },
    "array": {
        "string": [
            _t("join", "Join", "Join array items", "join", "conversion"),
            _t("first", "First Item", "Get first item", "arrow-top-left", "selection"),
            _t("last", "Last Item", "Get last item", "arrow-bottom-right", "selection"),
        ],
        "number": [
            _t("count", "Count", "Count items", "numerical", "aggregation"),
            _t("sum", "Sum", "Sum all values", "plus", "aggregation"),
            _t("average", "Average", "Calculate mean", "timeline-line-chart", "aggregation"),
            _t("min", "Minimum", "Find minimum", "arrow-down", "aggregation"),
            _t("max", "Maximum", "Find maximum", "arrow-up", "aggregation"),
        ],
        "array": [
            _t("direct", "Direct Copy", "Copy array as-is", "arrow-right", "basic"),
            _t("filter", "Filter", "Filter items", "filter", "manipulation"),
            _t("map", "Map", "Transform items", "exchange", "manipulation"),
            _t("sort", "Sort", "Sort items", "sort", "manipulation"),
            _t("unique", "Unique", "Remove duplicates", "group-objects", "manipulation"),
            _t("limit", "Limit", "Keep the first N items", "cut", "manipulation"),
        ],
        "object": [
            _t(
                "custom-aggregate", "Custom Aggregate",
                "Advanced array aggregation with custom logic",
                "code-block", "advanced",
            ),
        ],
    },
}


def get_available_transformations(
    source_type: Union[str, ValueKind],
    target_type: Union[str, ValueKind],
) -> list[TransformDefinition]:
    """Transformations offered for a source/target kind pair.

    ai-transform is always offered: placed before the first advanced entry,
    or appended when the pair has none.
    """
    source = source_type.value if isinstance(source_type, ValueKind) else source_type
    target = target_type.value if isinstance(target_type, ValueKind) else target_type

    transforms = list(TRANSFORMATIONS.get(source, {}).get(target, []))

    if not any(t.id == AI_TRANSFORM.id for t in transforms):
        advanced_index = next(
            (i for i, t in enumerate(transforms) if t.category == "advanced"),
            None,
        )
        if advanced_index is not None:
            transforms.insert(advanced_index, AI_TRANSFORM)
        else:
            transforms.append(AI_TRANSFORM)

    return transforms


def list_catalog() -> dict[str, dict[str, list[TransformDefinition]]]:
    """The full catalog, including ai-transform for every pair."""
    return {
        source: {
            target: get_available_transformations(source, target)
            for target in targets
        }
        for source, targets in TRANSFORMATIONS.items()
    }
