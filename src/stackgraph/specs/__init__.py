"""Stack declaration files: loading and variable substitution."""

from stackgraph.specs.loader import StackLoadError, load_stack, parse_stack
from stackgraph.specs.variable_substitution import VariableSubstitutor, load_environ

__all__ = [
    "StackLoadError",
    "VariableSubstitutor",
    "load_environ",
    "load_stack",
    "parse_stack",
]
