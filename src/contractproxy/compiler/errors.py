from __future__ import annotations

from typing import Any, Callable, Optional


def _qualname(obj: Any) -> str:
    return getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None) or repr(obj)


class CompilationError(RuntimeError):
    """
    Raised when a contract definition cannot be compiled into descriptors.

    Carries the offending contract, operation and parameter (when known) so
    the failing declaration can be located without re-running the compiler.
    """

    def __init__(
        self,
        message: str,
        *,
        contract: Optional[type] = None,
        operation: Optional[Callable] = None,
        parameter: Optional[str] = None,
    ):
        super().__init__(message)
        self.contract = contract
        self.operation = operation
        self.parameter = parameter


class MissingRouteAnnotation(CompilationError):
    def __init__(self, contract: type):
        super().__init__(
            f"@api_route is required for proxy contract {_qualname(contract)}.",
            contract=contract,
        )


class MissingRegionKey(CompilationError):
    def __init__(self, contract: type):
        super().__init__(
            f"Specify the region_key of @api_route on {_qualname(contract)}.",
            contract=contract,
        )


class FormFileBodyConflict(CompilationError):
    def __init__(self, contract: type, operation: Callable, parameter: str, type_name: str):
        super().__init__(
            f'Parameter "{type_name} as {parameter}" of {_qualname(operation)} is a FormFile. '
            "Remove the FromBody marker for multipart model binding.",
            contract=contract,
            operation=operation,
            parameter=parameter,
        )
        self.type_name = type_name


class PutKeyMismatch(CompilationError):
    def __init__(self, contract: type, operation: Callable, key: str):
        super().__init__(
            f'Key parameter "{key}" of {_qualname(operation)} does not match '
            "the method parameter at the same position.",
            contract=contract,
            operation=operation,
            parameter=key,
        )
        self.key = key


class PutKeyNotSimpleType(CompilationError):
    def __init__(self, contract: type, operation: Callable, key: str, type_name: str):
        super().__init__(
            f'Key parameter "{key}" of {_qualname(operation)} has type "{type_name}"; '
            "HTTP PUT URL keys must be simple types.",
            contract=contract,
            operation=operation,
            parameter=key,
        )
        self.key = key
        self.type_name = type_name


class InvalidRouteTemplate(CompilationError):
    def __init__(self, contract: type, operation: Callable, template: str, reason: str):
        super().__init__(
            f"Route template {template!r} of {_qualname(operation)} is invalid: {reason}",
            contract=contract,
            operation=operation,
        )
        self.template = template
        self.reason = reason


class UnresolvedParameterType(CompilationError):
    def __init__(
        self,
        contract: type,
        operation: Callable,
        detail: str,
        parameter: Optional[str] = None,
    ):
        where = f"parameter \"{parameter}\" of " if parameter else "parameter annotations of "
        super().__init__(
            f"Cannot resolve {where}{_qualname(operation)}: {detail}",
            contract=contract,
            operation=operation,
            parameter=parameter,
        )
