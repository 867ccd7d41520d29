# Entry point for ``python -m edumanager``.
from .cli import app

app(prog_name="edumanager")
