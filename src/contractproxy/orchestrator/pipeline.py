from __future__ import annotations

import importlib
import inspect
from dataclasses import dataclass
from typing import Iterable

import structlog

from contractproxy.compiler.compiler import DescriptorCompiler
from contractproxy.compiler.descriptors import DescriptorSet
from contractproxy.contracts.annotations import get_api_route

log = structlog.get_logger(__name__)


class ContractLoadError(RuntimeError):
    """Raised when a contract target cannot be imported or resolved."""


@dataclass(frozen=True)
class CompileResult:
    contracts: list[type]
    descriptors: DescriptorSet
    operation_count: int


def _import(module_name: str):
    try:
        return importlib.import_module(module_name)
    except ImportError as exc:
        raise ContractLoadError(f"Cannot import module {module_name!r}: {exc}") from exc


def _annotated_contracts(module) -> list[type]:
    # namespace order == definition order
    return [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj)
        and obj.__module__ == module.__name__
        and get_api_route(obj) is not None
    ]


def load_contracts(targets: Iterable[str]) -> list[type]:
    """
    Resolve CLI targets into contract classes.

      "pkg.contracts"             every @api_route class defined in the module
      "pkg.contracts:GuidelineApi"  one class (annotated or not)
    """
    out: list[type] = []
    for target in targets:
        module_name, sep, attr = target.strip().partition(":")
        module = _import(module_name)

        if sep:
            obj = getattr(module, attr, None)
            if obj is None:
                raise ContractLoadError(f"Module {module_name!r} has no attribute {attr!r}")
            if not inspect.isclass(obj):
                raise ContractLoadError(f"{target!r} is not a class")
            found = [obj]
        else:
            found = _annotated_contracts(module)
            if not found:
                log.warning("contracts.none_found", module=module_name)

        for c in found:
            if c not in out:
                out.append(c)

    return out


def run_compile(targets: Iterable[str], compiler: DescriptorCompiler | None = None) -> CompileResult:
    contracts = load_contracts(targets)
    descriptors = (compiler or DescriptorCompiler()).compile(contracts)
    return CompileResult(
        contracts=contracts,
        descriptors=descriptors,
        operation_count=descriptors.operation_count,
    )
