from .scanner import (
    PLACEHOLDER_DELIMITERS,
    PLACEHOLDER_PATTERN,
    PlaceholderResult,
    TemplateError,
    TemplatePath,
    TemplateReport,
    evaluate_template,
    expand_template,
    extract_expression,
)

__all__ = [
    "PLACEHOLDER_DELIMITERS",
    "PLACEHOLDER_PATTERN",
    "PlaceholderResult",
    "TemplateError",
    "TemplatePath",
    "TemplateReport",
    "evaluate_template",
    "expand_template",
    "extract_expression",
]
