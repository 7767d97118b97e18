"""Introspection of bindable types and conversion between instances and argument maps.

A :class:`DescribableModel` is derived from a type's construction contract (its
``__init__``, or a classmethod marked with ``@data_bound_constructor``) and its
data bound setters. It provides:

- ``instantiate``: build an instance from a JSON-like map of arguments,
- ``uninstantiate``: take an existing instance and produce an
  :class:`~structs.uninstantiated.UninstantiatedDescribable` that can be fed back
  to ``instantiate``,
- ``parameters``: enumerate the parameters, for documentation or schema purposes.

Some structures are recursive or mutually recursive. A caller traversing a model
graph should keep a stack of the types already encountered, as ``describe`` does.
"""

import inspect
import logging
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Mapping, Optional, get_args, get_origin, get_type_hints

from structs.custom import deeply_immutable
from structs.domain import DataBoundSetter, Secret
from structs.errors import ArgumentError, ConfigurationError, StructsError, UnsupportedOperationError
from structs.parameter import DescribableParameter, FieldSetter, MethodSetter
from structs.parameter_types import (
    MISSING,
    ErrorType,
    erasure,
    map_shape,
    sequence_shape,
    string_backed,
    strip_type,
)
from structs.registry import qualified_name
from structs.uninstantiated import (
    ANONYMOUS_KEY,
    CLAZZ,
    SYMBOL,
    UninstantiatedConstant,
    UninstantiatedDescribable,
)

if TYPE_CHECKING:
    from structs.binder import Binder

__all__ = ["DescribableModel", "SECRETS_INVOLVED"]

logger = logging.getLogger(__name__)

SECRETS_INVOLVED = "Secrets are involved, so details are omitted"

_SETTER_PREFIX = "set_"

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)

_NUMERIC = (int, float, complex)


def _find_designated_constructor(cls: type) -> Optional[str]:
    """Name of the attribute marked ``__data_bound_constructor__`` along the MRO, if any."""
    for klass in cls.__mro__:
        for name, attribute in vars(klass).items():
            func = getattr(attribute, "__func__", attribute)
            if getattr(func, "__data_bound_constructor__", False):
                return name
    return None


def _type_hints(target: Any, owner: type) -> dict[str, Any]:
    try:
        return get_type_hints(target, include_extras=True)
    except (NameError, TypeError) as x:
        raise ConfigurationError(f"Cannot resolve type hints of {qualified_name(owner)}: {x}") from x


def _setter_marker(hint: Any) -> Optional[DataBoundSetter]:
    if get_origin(hint) is not Annotated:
        return None
    return next((m for m in get_args(hint)[1:] if isinstance(m, DataBoundSetter)), None)


def _involves_secrets(value: Any) -> bool:
    if isinstance(value, Secret):
        return True
    if isinstance(value, UninstantiatedDescribable):
        return _involves_secrets(value.arguments)
    if isinstance(value, Mapping):
        return any(_involves_secrets(v) for v in value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(_involves_secrets(v) for v in value)
    return False


def _is_instance(value: Any, cls: Any) -> bool:
    try:
        return isinstance(value, cls)
    except TypeError:
        return False


def _type_name(declared: Any) -> str:
    t = strip_type(declared)
    return t.__name__ if inspect.isclass(t) else str(t)


class DescribableModel:
    """Definition of the structure of a class.

    Describes what kind of data you might get back from :meth:`uninstantiate` on an
    instance, or might want to pass to :meth:`instantiate`. Obtain models through
    :meth:`Binder.model_of <structs.binder.Binder.model_of>`, which caches them.

    Attributes:
        type: The class this model represents.
        binder: The binder supplying implementations, symbols and settings.

    Raises:
        ConfigurationError: If the construction contract or a setter is malformed.

    Example:
        >>> model = binder.model_of(Greeting)
        >>> str(model)  # "Greeting(text: str, flag: bool)"
        >>> model.uninstantiate(model.instantiate({"text": "hi"})).to_map()  # {"text": "hi"}
    """

    def __init__(self, cls: type, binder: "Binder"):
        if not inspect.isclass(cls):
            raise ConfigurationError(f"{cls} is not a class")
        self.type = cls
        self.binder = binder
        self._parameters: dict[str, DescribableParameter] = {}
        self._keyword_only: set[str] = set()

        constructor_name = _find_designated_constructor(cls)
        if constructor_name is None or constructor_name == "__init__":
            self._constructor = cls
            signature_target = cls.__init__
            skip_first = True
        else:
            self._constructor = getattr(cls, constructor_name)
            signature_target = self._constructor
            skip_first = False

        signature_parameters = [
            p for p in list(inspect.signature(signature_target).parameters.values())[int(skip_first):]
            if p.kind not in _VARIADIC
        ]
        hints = _type_hints(signature_target, cls) if signature_parameters else {}
        names = getattr(cls, "__parameter_names__", None)
        if names is None:
            names = [p.name for p in signature_parameters]
        elif len(names) != len(signature_parameters):
            where = "data bound constructor" if constructor_name else "constructor"
            raise ConfigurationError(
                f"{qualified_name(cls)} has a {where} taking {len(signature_parameters)} argument(s) "
                f"but declares {len(names)} parameter name(s): {', '.join(names)}"
            )

        for name, parameter in zip(names, signature_parameters):
            default = MISSING if parameter.default is inspect.Parameter.empty else parameter.default
            raw_type = hints.get(parameter.name, Any)
            self._parameters[name] = DescribableParameter(self, raw_type, name, default=default)
            if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                self._keyword_only.add(parameter.name)
        self._signature_names = {name: p.name for name, p in zip(names, signature_parameters)}

        # The rest of the parameters are sorted alphabetically.
        rest: dict[str, DescribableParameter] = {}
        self._collect_method_setters(rest)
        self._collect_field_setters(rest)
        for name in sorted(rest):
            self._parameters.setdefault(name, rest[name])

    def _collect_method_setters(self, rest: dict[str, DescribableParameter]):
        for klass in self.type.__mro__:
            for attribute_name, attribute in vars(klass).items():
                func = getattr(attribute, "__func__", attribute)
                marker = getattr(func, "__data_bound_setter__", None)
                if not isinstance(marker, DataBoundSetter):
                    continue
                value_parameters = list(inspect.signature(func).parameters.values())[1:]
                if (
                    not attribute_name.startswith(_SETTER_PREFIX)
                    or len(attribute_name) == len(_SETTER_PREFIX)
                    or len(value_parameters) != 1
                    or value_parameters[0].kind in _VARIADIC
                ):
                    raise ConfigurationError(
                        f"{klass.__qualname__}.{attribute_name} cannot be a data bound setter"
                    )
                name = attribute_name[len(_SETTER_PREFIX):]
                if name in rest:
                    continue
                raw_type = _type_hints(func, self.type).get(value_parameters[0].name, Any)
                deprecated = marker.deprecated or getattr(func, "__deprecated__", None) is not None
                rest[name] = DescribableParameter(
                    self, raw_type, name, MethodSetter(self.type, attribute_name), deprecated
                )

    def _collect_field_setters(self, rest: dict[str, DescribableParameter]):
        for name, hint in _type_hints(self.type, self.type).items():
            marker = _setter_marker(hint)
            if marker is None or name in rest:
                continue
            rest[name] = DescribableParameter(
                self, hint, name, FieldSetter(self.type, name), marker.deprecated
            )

    @property
    def parameters(self) -> tuple[DescribableParameter, ...]:
        """Required parameters in construction order, followed by optional ones by name."""
        return tuple(self._parameters.values())

    def get_parameter(self, name: str) -> Optional[DescribableParameter]:
        return self._parameters.get(name)

    @property
    def sole_required_parameter(self) -> Optional[DescribableParameter]:
        """The only required parameter, or None if there are zero or several."""
        required = [p for p in self.parameters if p.required]
        return required[0] if len(required) == 1 else None

    @property
    def has_single_required_parameter(self) -> bool:
        return self.sole_required_parameter is not None

    @property
    def first_required_parameter(self) -> Optional[DescribableParameter]:
        return next((p for p in self.parameters if p.required), None)

    @property
    def display_name(self) -> str:
        descriptor = self.binder.registry.descriptor_for(self.type)
        return descriptor.display_name if descriptor else self.type.__name__

    @property
    def deprecated(self) -> bool:
        return "__deprecated__" in vars(self.type)

    @property
    def help(self) -> Optional[str]:
        return self.get_help()

    def get_help(self, parameter: Optional[str] = None) -> Optional[str]:
        """Help text for the type or one of its parameters, searching up the class hierarchy."""
        for klass in self.type.__mro__:
            text = self.binder.registry.resolve_text(klass, parameter)
            if text is not None:
                return text
        return None

    def instantiate(self, arguments: Mapping[str, Any], listener: Optional[logging.Logger] = None) -> Any:
        """Create an instance through the construction operation and data bound setters.

        Arguments may be scalars, or strings where the declared type is an enum, a
        number, a boolean or a string-backed type such as a path. A list may be used
        for any list- or array-valued parameter. A mapping with string keys may be
        used for any nested bindable type, with the reserved ``$class`` key naming
        the implementation by simple or fully qualified name (it may be left out
        where the declared type is concrete), or ``$symbol`` naming it by symbol.

        Args:
            arguments: The generic arguments.
            listener: Logger receiving warnings about ignored arguments; defaults to
                this module's logger.

        Returns:
            The instantiated object.

        Raises:
            ArgumentError: If the arguments cannot be bound.
            ConfigurationError: If a nested type has a malformed construction contract.
        """
        listener = listener or logger

        customizer = self.binder.customizer_for(self.type)
        if customizer is not None:
            given = deeply_immutable(arguments)
            arguments = customizer.custom_instantiate(given)
            logger.debug(f"{type(customizer).__name__} translated {given} to {arguments}")

        if ANONYMOUS_KEY in arguments:
            if len(arguments) != 1:
                raise ArgumentError(f"All arguments have to be named but it has {ANONYMOUS_KEY}")
            sole = self.sole_required_parameter
            if sole is None:
                raise ArgumentError(f"Arguments to {qualified_name(self.type)} have to be explicitly named")
            arguments = {sole.name: arguments[ANONYMOUS_KEY]}

        unknown = sorted(set(arguments) - set(self._parameters))
        if unknown:
            message = (
                f"Unknown parameter(s) found for class type '{qualified_name(self.type)}': {','.join(unknown)}"
            )
            if self.binder.settings.strict_parameter_checking:
                raise ArgumentError(message)
            listener.warning(message)

        try:
            args, kwargs = self._build_arguments(arguments, listener)
            instance = self._constructor(*args, **kwargs)
            self._inject_setters(instance, arguments, listener)
            return instance
        except ConfigurationError:
            raise
        except Exception as x:
            if self._carries_secrets(arguments) or SECRETS_INVOLVED in str(x):
                raise ArgumentError(
                    f"Could not instantiate {sorted(arguments)} for {qualified_name(self.type)}: {SECRETS_INVOLVED}"
                ) from x
            raise ArgumentError(
                f"Could not instantiate {dict(arguments)} for {qualified_name(self.type)}: {x}"
            ) from x

    def _carries_secrets(self, arguments: Mapping[str, Any]) -> bool:
        for name, value in arguments.items():
            parameter = self._parameters.get(name)
            if parameter is not None and string_backed(parameter.raw_type) is not None:
                t = strip_type(parameter.raw_type)
                if issubclass(t, Secret):
                    return True
            if _involves_secrets(value):
                return True
        return False

    def _build_arguments(self, arguments: Mapping[str, Any], listener) -> tuple[list, dict]:
        args: list = []
        kwargs: dict = {}
        for parameter in self.parameters:
            if not parameter.required:
                continue
            value = arguments.get(parameter.name)
            if value is not None:
                value = self._coerce_parameter(f"{self.type.__qualname__}.{parameter.name}", parameter, value, listener)
            else:
                value = parameter.absent_value()
            signature_name = self._signature_names[parameter.name]
            if signature_name in self._keyword_only:
                kwargs[signature_name] = value
            else:
                args.append(value)
        return args, kwargs

    def _inject_setters(self, instance: Any, arguments: Mapping[str, Any], listener):
        for parameter in self.parameters:
            if parameter.setter is not None and parameter.name in arguments:
                value = self._coerce_parameter(
                    parameter.setter.display_name, parameter, arguments[parameter.name], listener
                )
                parameter.setter.set(instance, value)

    def _coerce_parameter(self, context: str, parameter: DescribableParameter, value: Any, listener) -> Any:
        if isinstance(parameter.type, ErrorType):
            raise UnsupportedOperationError(
                f"{context} has a type that cannot be bound: {parameter.type.error}"
            ) from parameter.type.error
        return self._coerce(context, parameter.raw_type, value, listener)

    def _coerce(self, context: str, declared: Any, value: Any, listener) -> Any:
        """Convert a generic value into the declared type.

        Args:
            context: Human readable location of the coercion, used when reporting a problem.
            declared: The type to convert the value to.
            value: The generic value.
            listener: Passed on to nested instantiation.
        """
        t = strip_type(declared)
        erased = erasure(declared)
        base = erased if inspect.isclass(erased) else object

        if isinstance(value, UninstantiatedConstant):
            return value.instantiate(base, self.binder.symbols)
        if value is None:
            return None
        if isinstance(value, UninstantiatedDescribable) and not issubclass(base, UninstantiatedDescribable):
            return value.instantiate(base, listener, self.binder)

        sequence = sequence_shape(declared)
        if sequence is not None and isinstance(value, (list, tuple, set, frozenset)):
            container, element_type = sequence
            return container(self._coerce(context, element_type, e, listener) for e in value)

        mapping = map_shape(declared)
        if mapping is not None and isinstance(value, Mapping):
            key_type, value_type = mapping
            return {
                self._coerce(context, key_type, k, listener): self._coerce(context, value_type, v, listener)
                for k, v in value.items()
            }

        if type(value) is bool and erased in _NUMERIC:
            raise ArgumentError(f"{context} expects {erased.__name__} but received bool")
        if erased in (float, complex) and type(value) is int:
            return erased(value)
        if isinstance(value, Mapping) and (CLAZZ in value or SYMBOL in value or not _is_instance(value, erased)):
            nested = dict(value)
            cls = self.binder.resolve_class(base, nested.pop(CLAZZ, None), nested.pop(SYMBOL, None))
            return self.binder.model_of(cls).instantiate(nested, listener)
        if _is_instance(value, erased):
            return value

        if isinstance(value, str):
            if inspect.isclass(t) and get_origin(t) is None and issubclass(t, Enum):
                return self._coerce_enum(context, t, value)
            backed = string_backed(declared)
            if backed is not None:
                try:
                    return backed[0](value)
                except (ValueError, ArithmeticError) as x:
                    raise ArgumentError(
                        f"{context} expects {_type_name(declared)} but was unable to coerce "
                        f"the received value \"{value}\" to that type"
                    ) from x
            if erased is bool:
                if value.lower() in ("true", "false"):
                    return value.lower() == "true"
                raise ArgumentError(f"{context} expects bool but received \"{value}\"")
            if erased in _NUMERIC:
                try:
                    return erased(value)
                except ValueError as x:
                    raise ArgumentError(
                        f"{context} expects {erased.__name__} but was unable to coerce "
                        f"the received value \"{value}\" to that type"
                    ) from x

        raise ArgumentError(f"{context} expects {_type_name(declared)} but received {type(value).__qualname__}")

    def _coerce_enum(self, context: str, enum_type: type, value: str) -> Any:
        if value in enum_type.__members__:
            return enum_type[value]
        constant = self.binder.symbols.find_const(enum_type, value)
        if constant is not None:
            return constant
        raise ArgumentError(
            f"{context} expects one of {', '.join(enum_type.__members__)} but received \"{value}\""
        )

    def uninstantiate(self, instance: Any) -> UninstantiatedDescribable:
        """Dissect an instance into an UninstantiatedDescribable that re-instantiates it.

        Optional parameters still at their default are left out. The default is
        found by building a control object from the required parameters only; a
        second control object built from the non-deprecated parameters decides which
        deprecated parameters can be left out.

        Raises:
            UnsupportedOperationError: If ``instance`` is None, is not an instance of
                this model's type, or lacks an attribute for one of the parameters.
        """
        if instance is None:
            raise UnsupportedOperationError(f"Expected {qualified_name(self.type)} but got None")
        if not isinstance(instance, self.type):
            raise UnsupportedOperationError(
                f"Expected {qualified_name(self.type)} but got an instance of {qualified_name(type(instance))}"
            )

        result: dict[str, Any] = {}
        required_only: dict[str, Any] = {}
        non_deprecated: dict[str, Any] = {}
        for parameter in self.parameters:
            value = parameter.inspect(instance)
            if parameter.required and parameter.is_absent_equivalent(value):
                # Leaving it out of the arguments produces the same value.
                continue
            result[parameter.name] = value
            if parameter.required:
                required_only[parameter.name] = value
            if not parameter.deprecated:
                non_deprecated[parameter.name] = value

        optional = [p for p in self.parameters if not p.required]
        for name in self._drop_control_defaults(result, required_only, optional):
            non_deprecated.pop(name, None)

        if set(non_deprecated) != set(result):
            deprecated = [p for p in self.parameters if p.deprecated]
            self._drop_control_defaults(result, non_deprecated, deprecated)

        ud = UninstantiatedDescribable(
            self.binder.symbol_of(instance), None, dict(sorted(result.items())), model=self
        )
        customizer = self.binder.customizer_for(self.type)
        if customizer is not None:
            given = deeply_immutable(ud)
            ud = customizer.custom_uninstantiate(given)
            logger.debug(f"{type(customizer).__name__} translated {given} to {ud}")
        return ud

    def _drop_control_defaults(
        self, result: dict[str, Any], basis: dict[str, Any], candidates: list[DescribableParameter]
    ) -> list[str]:
        """Remove candidates whose value equals that of a control object built from ``basis``.

        Returns:
            The names removed from ``result``.
        """
        try:
            control = self.instantiate(basis)
        except StructsError as x:
            shown = SECRETS_INVOLVED if _involves_secrets(basis) else basis
            logger.warning(f"Cannot create control version of {qualified_name(self.type)} using {shown}: {x}")
            return []
        dropped = []
        for parameter in candidates:
            if parameter.name in result and parameter.inspect(control) == result[parameter.name]:
                del result[parameter.name]
                dropped.append(parameter.name)
        return dropped

    def describe(self, out: list[str], model_types: list[type]):
        out.append(self.type.__name__)
        if self.type in model_types:
            out.append("…")
            return
        model_types.append(self.type)
        try:
            out.append("(")
            for i, parameter in enumerate(self.parameters):
                if i:
                    out.append(", ")
                parameter.describe(out, model_types)
            out.append(")")
        finally:
            model_types.pop()

    def __str__(self):
        out: list[str] = []
        self.describe(out, [])
        return "".join(out)

    def __repr__(self):
        return f"<DescribableModel {qualified_name(self.type)}>"

    def __reduce__(self):
        # Everything but the type can be recomputed.
        return _model_of, (self.type,)


def _model_of(cls: type) -> DescribableModel:
    from structs.binder import get_binder

    return get_binder().model_of(cls)
