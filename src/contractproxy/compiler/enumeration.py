from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Callable, Optional

from contractproxy.contracts.annotations import ApiContract

_CONTRACT_SUFFIXES = ("Api", "Contract")
_PLUMBING_MODULES = {"builtins", "typing", "typing_extensions", "abc"}


@dataclass(frozen=True)
class OperationMember:
    name: str
    function: Callable
    declaring_type: type
    is_static: bool = False


def contract_root_path(contract: type, route_template: Optional[str]) -> str:
    """
    GuidelineApi + "api/v1" -> "api/v1/Guideline"

    Only one leading "/" is removed from the result.
    """
    name = contract.__name__
    for suffix in _CONTRACT_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break

    if route_template and route_template.strip():
        route = f"{route_template.strip().rstrip('/')}/{name}"
    else:
        route = name

    if route.startswith("/"):
        route = route[1:]
    return route


def declared_operations(cls: type) -> list[OperationMember]:
    """Public functions and staticmethods declared directly on cls, in namespace order."""
    out: list[OperationMember] = []
    for name, value in vars(cls).items():
        if name.startswith("_"):
            continue
        if isinstance(value, staticmethod):
            out.append(OperationMember(name, value.__func__, cls, is_static=True))
        elif inspect.isfunction(value):
            out.append(OperationMember(name, value, cls))
        # properties, classmethods and plain attributes are not operations
    return out


def _is_plumbing(base: type) -> bool:
    return base is object or base.__module__ in _PLUMBING_MODULES


def iter_contract_operations(
    contract: type,
    root: type = ApiContract,
) -> list[OperationMember]:
    """
    Operations of a contract, in a stable order:

      1. declared on the contract itself
      2. declared on each base class (MRO order), except the root
      3. declared on the root contract (baseline operations)

    The same function object is reported once; same-named functions from
    different classes are distinct operations.
    """
    members = declared_operations(contract)
    for base in contract.__mro__[1:]:
        if base is root or _is_plumbing(base):
            continue
        members.extend(declared_operations(base))
    if contract is not root:
        members.extend(declared_operations(root))

    seen: set[int] = set()
    out: list[OperationMember] = []
    for m in members:
        # functions are compared by identity, not by name or signature
        if id(m.function) in seen:
            continue
        seen.add(id(m.function))
        out.append(m)
    return out
