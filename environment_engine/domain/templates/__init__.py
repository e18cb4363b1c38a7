"""Environment templates."""

from .wordpress import build_descriptor
from .php import render_php_ini
from .project_files import GITIGNORE, PHPINFO


__all__ = ["build_descriptor", "render_php_ini", "GITIGNORE", "PHPINFO"]
