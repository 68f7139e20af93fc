import logging

logging.basicConfig(
    level=logging.WARNING,  # reports go to stdout; stderr stays quiet unless --verbose switches to DEBUG
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger("nlreturnfmt")


def set_verbose(verbose: bool) -> None:
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
