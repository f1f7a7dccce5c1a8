import builtins
import gettext
import logging
from pathlib import Path
from .config import getflag

__version__ = "0.1.0"

LOCALE_DIR = Path(__file__).parent / "locale"

# Make "_" available in all modules, unless the host application already
# installed its own translations.
if not hasattr(builtins, "_"):
    gettext.install("canvasforge", LOCALE_DIR)


def setup_logging(level=None):
    """
    Configures the root logger. The level defaults to DEBUG when the
    CANVASFORGE_DEBUG flag is set, INFO otherwise.
    """
    if level is None:
        level = logging.DEBUG if getflag("CANVASFORGE_DEBUG") else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
