from collections.abc import Mapping
from types import MappingProxyType

from loguru import logger

TemplateContext = Mapping[str, str]
""" Read-only mapping of template variable names to their values. """

VARIABLE_PREFIXES = ("DRONE_", "PLUGIN_")
"""
Environment variable prefixes that are exposed as template variables. Prefixes are scanned in this order, thus a
`PLUGIN_` variable overrides a `DRONE_` variable with the same suffix.
"""


def build_template_context(environ: Mapping[str, str]) -> TemplateContext:
    """
    Build the template variables from the given environment. For every variable that starts with one of the
    `VARIABLE_PREFIXES`, the prefix is stripped and the remainder is lower-cased to form the variable name.

    Args:
        environ: The process environment, usually `os.environ`.
    Returns:
        A read-only mapping. Variables that match none of the prefixes are ignored.
    """

    context: dict[str, str] = {}
    for prefix in VARIABLE_PREFIXES:
        for key, value in environ.items():
            if not key.startswith(prefix) or len(key) == len(prefix):
                continue
            name = key[len(prefix) :].lower()
            if name in context:
                logger.trace("Template variable '{}' is overridden by {}", name, key)
            context[name] = value

    logger.debug("Collected {} template variable(s) from the environment", len(context))
    return MappingProxyType(context)
