import logging
from rich.logging import RichHandler
from rich.console import Console

logging.basicConfig(
    level="INFO",
    format="[%(name)s] PID %(process)d %(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
)


# Kernel instantiation is logged at DEBUG, launch failures at ERROR.
LogWriter = logging.getLogger("bilateral-warp")
