import logging
import sys
from typing import Optional, Sequence

from .config import load_settings
from .server import ServiceServer


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = load_settings(argv)
    configure_logging(settings.log_level)
    return ServiceServer(settings).run()


if __name__ == "__main__":
    sys.exit(main())
