import nl_return
import syntax_tree
from configuration import FormatterConfig
from logger import logger
from results import FormatResult

STDIN_UNIT = "<stdin>"


def format_unit(unit: str, source: bytes, config: FormatterConfig) -> FormatResult:
    """
    Format one unit of Go source.

    Each call parses its own tree, so concurrent calls share nothing but the
    read-only config. Untouched sources are returned as-is without rendering.

    Raises:
        ParseError: the source is malformed.
        SerializationError: the modified tree could not be rendered.
    """
    tree = syntax_tree.parse(unit, source)
    changes = nl_return.apply(tree, config)

    if not tree.modified:
        return FormatResult(unit=unit, content=source, modified=False)

    content = syntax_tree.render(tree)
    logger.debug(f"{unit}: {len(changes)} blank line(s) inserted")
    return FormatResult(unit=unit, content=content, modified=True, changes=tuple(changes))
