# photo_modules/logger.py
from rich.console import Console
from rich.traceback import install
from rich import pretty

# Pretty tracebacks for unexpected faults; malformed payloads never raise
install(show_locals=False)
pretty.install()

# Shared console logger for the normalizer and the API
console = Console()
