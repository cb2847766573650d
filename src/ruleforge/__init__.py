"""RuleForge declarative parameter validation.

Fields are declared once as bags of directives (``required``,
``min_length``, ``pattern``...), optionally composed from mixins, and
every validation runs against a fresh context built from them:

Usage:
    from ruleforge import ClassConfiguration

    config = ClassConfiguration()
    config.mixin("basic", required=True, filters=["trim", "strip"])
    config.field("login", mixin="basic", min_length=5)

    context = config.new({"login": "admin"})
    if not context.validate():
        print(context.errors_to_string())
"""

from ruleforge.configuration import ClassConfiguration, MethodSpec
from ruleforge.directives import Directive, DirectiveRegistry, core_directives
from ruleforge.engine import ValidationContext
from ruleforge.fields import Field, Mixin
from ruleforge.loader import (
    CallableRegistry,
    ConfigurationLoader,
    load_configuration,
    register_callable,
)
from ruleforge.params import Params, flatten, unflatten
from ruleforge.types import EngineOptions, ErrorList, Event, FilterPhase

__all__ = [
    "CallableRegistry",
    "ClassConfiguration",
    "ConfigurationLoader",
    "Directive",
    "DirectiveRegistry",
    "EngineOptions",
    "ErrorList",
    "Event",
    "Field",
    "FilterPhase",
    "MethodSpec",
    "Mixin",
    "Params",
    "ValidationContext",
    "core_directives",
    "flatten",
    "load_configuration",
    "register_callable",
    "unflatten",
]
