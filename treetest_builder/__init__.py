from .check import check, expectations_from_hir
from .emitter import emit
from .extract import extract
from .fix import fix
from .translator import translate
from .tree import parse_tree

__all__ = ["__version__", "check", "emit", "expectations_from_hir", "extract", "fix", "parse_tree", "translate"]

__version__ = "0.1.0"
