import re

import jinja2

from kubessa.engine.context import TemplateContext
from kubessa.engine.errors import TemplateError

_UNDEFINED_RE = re.compile(r"^'([^']+)' is undefined$")


class TemplateRenderer:
    """
    Renders a manifest source against the template variables. Rendering is strict: a reference to a variable that
    is not defined fails instead of silently rendering an empty string.
    """

    def __init__(self, context: TemplateContext) -> None:
        self._env = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self._env.globals.update(context)

    def render(self, template: str, name: str | None = None) -> str:
        """
        Renders the given template.

        Args:
            template: The template source text.
            name: The name of the template, usually the file it was read from. Only used in error messages.
        Raises:
            TemplateError: If the template is malformed or references an undefined variable.
        """

        try:
            return self._env.from_string(template).render()
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateError(f"Malformed template {name or '<string>'} (line {exc.lineno}): {exc.message}") from exc
        except jinja2.UndefinedError as exc:
            match = _UNDEFINED_RE.match(exc.message or "")
            variable = match.group(1) if match else None
            if variable is not None:
                message = f"Template {name or '<string>'} references undefined variable '{variable}'"
            else:
                message = f"Template {name or '<string>'} could not be rendered: {exc.message}"
            raise TemplateError(message, variable=variable) from exc
