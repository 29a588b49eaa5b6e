"""Core package for the Inkspire interactive fiction engine."""

from .actions import Action, parse_actions
from .adventure import (
    CONTROL_NAMESPACE,
    Adventure,
    ControlScene,
    Option,
    Resolved,
    Scene,
    SceneRegistry,
    Unresolved,
    build_adventure,
)
from .conditions import Conditional
from .engine import AdventureEngine, TraversalOutcome
from .errors import (
    DiagnosticContext,
    DocumentError,
    EvaluationError,
    ExpressionSyntaxError,
    InkspireError,
    LinkError,
    MalformedIdentifierError,
    ParseError,
    TraversalError,
    UndefinedVariableError,
    format_diagnostic,
)
from .history import BoundedHistory
from .identifiers import Identifier, is_valid_identifier, parse_identifier
from .linker import link
from .settings import EngineSettings
from .text import Text
from .variables import VariableStore

__all__ = [
    "Action",
    "Adventure",
    "AdventureEngine",
    "BoundedHistory",
    "CONTROL_NAMESPACE",
    "Conditional",
    "ControlScene",
    "DiagnosticContext",
    "DocumentError",
    "EngineSettings",
    "EvaluationError",
    "ExpressionSyntaxError",
    "Identifier",
    "InkspireError",
    "LinkError",
    "MalformedIdentifierError",
    "Option",
    "ParseError",
    "Resolved",
    "Scene",
    "SceneRegistry",
    "Text",
    "TraversalError",
    "TraversalOutcome",
    "UndefinedVariableError",
    "Unresolved",
    "VariableStore",
    "build_adventure",
    "format_diagnostic",
    "is_valid_identifier",
    "link",
    "parse_actions",
    "parse_identifier",
]
