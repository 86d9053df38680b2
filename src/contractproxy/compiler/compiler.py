from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import structlog

from contractproxy.compiler.descriptors import (
    DescriptorSet,
    ProxyDescriptor,
    ProxyMethodDescriptor,
    _ContractDescriptorBuilder,
    _MethodDescriptorBuilder,
)
from contractproxy.compiler.enumeration import (
    OperationMember,
    contract_root_path,
    iter_contract_operations,
)
from contractproxy.compiler.errors import (
    FormFileBodyConflict,
    InvalidRouteTemplate,
    MissingRegionKey,
    MissingRouteAnnotation,
    PutKeyMismatch,
    PutKeyNotSimpleType,
    UnresolvedParameterType,
)
from contractproxy.contracts.annotations import (
    ApiContract,
    ContentType,
    HttpPostMarker,
    HttpPutMarker,
    get_api_route,
    get_headers,
    get_http_marker,
    get_timeout,
    is_from_body_marker,
)
from contractproxy.metadata.provider import (
    DefaultModelMetadataProvider,
    ModelMetadataProvider,
    ParameterInfo,
)
from contractproxy.routing.template import RouteTemplateParser, TemplateParser

log = structlog.get_logger(__name__)


@dataclass
class ProxyBuilderOptions:
    """The fixed list of contracts compiled at startup."""

    contracts: list[type] = field(default_factory=list)

    def register(self, *contracts: type) -> "ProxyBuilderOptions":
        for c in contracts:
            if c not in self.contracts:
                self.contracts.append(c)
        return self


def parse_headers(entries: Iterable[str]) -> dict[str, str]:
    """
    "X-Trace: abc123" -> {"X-Trace": "abc123"}

    Split on the first colon only; entries without a colon (or with an empty
    name) are skipped. Later duplicates win.
    """
    headers: dict[str, str] = {}
    for entry in entries:
        name, sep, value = entry.partition(":")
        if not sep:
            continue
        name = name.strip()
        if not name:
            continue
        headers[name] = value.strip()
    return headers


def _annotated_markers(tp: Any) -> tuple[Any, ...]:
    origin = typing.get_origin(tp)
    if origin is typing.Annotated:
        return tuple(typing.get_args(tp)[1:])
    # Optional[Annotated[...]] (implicit Optional from a None default)
    out: list[Any] = []
    for arg in typing.get_args(tp):
        if typing.get_origin(arg) is typing.Annotated:
            out.extend(typing.get_args(arg)[1:])
    return tuple(out)


def operation_parameters(contract: type, member: OperationMember) -> list[ParameterInfo]:
    fn = member.function
    try:
        hints = typing.get_type_hints(fn, include_extras=True)
    except NameError as exc:
        raise UnresolvedParameterType(contract, fn, str(exc)) from exc

    params = list(inspect.signature(fn).parameters.values())
    if not member.is_static and params:
        params = params[1:]  # self

    out: list[ParameterInfo] = []
    for p in params:
        if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = hints.get(p.name, inspect.Parameter.empty)
        out.append(
            ParameterInfo(
                name=p.name,
                annotation=annotation,
                markers=_annotated_markers(annotation),
            )
        )
    return out


class DescriptorCompiler:
    """
    Compiles proxy contracts into an immutable DescriptorSet.

    Runs once at startup. Any invalid declaration raises a CompilationError
    and no DescriptorSet is produced.
    """

    def __init__(
        self,
        metadata_provider: Optional[ModelMetadataProvider] = None,
        template_parser: Optional[RouteTemplateParser] = None,
        root_contract: type = ApiContract,
    ):
        self.metadata_provider = metadata_provider or DefaultModelMetadataProvider()
        self.template_parser = template_parser or TemplateParser()
        self.root_contract = root_contract

    def compile_options(self, options: ProxyBuilderOptions) -> DescriptorSet:
        return self.compile(options.contracts)

    def compile(self, contracts: Iterable[type]) -> DescriptorSet:
        compiled: dict[type, ProxyDescriptor] = {}
        for contract in contracts:
            if contract in compiled:
                continue
            compiled[contract] = self._compile_contract(contract)

        result = DescriptorSet(compiled)
        log.info(
            "descriptors.compiled",
            contracts=len(result),
            operations=result.operation_count,
        )
        return result

    # ----------------------------
    # Contract level
    # ----------------------------

    def _compile_contract(self, contract: type) -> ProxyDescriptor:
        route_attr = get_api_route(contract)
        if route_attr is None:
            raise MissingRouteAnnotation(contract)

        region_key = route_attr.region_key
        if not isinstance(region_key, str) or not region_key.strip():
            raise MissingRegionKey(contract)

        builder = _ContractDescriptorBuilder(
            contract=contract,
            region_key=region_key,
            route=contract_root_path(contract, route_attr.route_template),
        )

        for member in iter_contract_operations(contract, root=self.root_contract):
            builder.add(self._compile_operation(contract, member))

        log.debug(
            "contract.compiled",
            contract=contract.__qualname__,
            region_key=builder.region_key,
            route=builder.route,
            operations=len(builder.methods),
        )
        return builder.freeze()

    # ----------------------------
    # Operation level
    # ----------------------------

    def _compile_operation(self, contract: type, member: OperationMember) -> ProxyMethodDescriptor:
        fn = member.function
        b = _MethodDescriptorBuilder(method=fn, name=member.name, declaring_type=member.declaring_type)

        is_multipart = False
        for param in operation_parameters(contract, member):
            try:
                meta = self.metadata_provider.get_metadata_for_parameter(param)
                if meta.is_form_file:
                    is_multipart = True
                    if any(is_from_body_marker(m) for m in param.markers):
                        raise FormFileBodyConflict(contract, fn, param.name, meta.type_name)
                elif any(p.is_form_file for p in self.metadata_provider.to_flat(meta)):
                    is_multipart = True
            except NameError as exc:
                # nested property annotations are only resolved while flattening
                raise UnresolvedParameterType(contract, fn, str(exc), parameter=param.name) from exc
            b.parameters.append(meta)

        marker = get_http_marker(fn)
        if isinstance(marker, (HttpPostMarker, HttpPutMarker)):
            b.content_type = marker.content_type
        if is_multipart:
            b.content_type = ContentType.MULTIPART_FORM_DATA

        b.timeout = get_timeout(fn)

        header_entries = get_headers(fn)
        if header_entries:
            b.headers.update(parse_headers(header_entries))

        if marker is None:
            b.http_method = "GET"
        else:
            if marker.template and marker.template.strip():
                self._resolve_template(contract, b, marker.template)
            b.http_method = marker.http_method
            if isinstance(marker, HttpPutMarker) and b.template_parameter_keys:
                self._validate_put_keys(contract, b)

        log.debug(
            "operation.compiled",
            contract=contract.__qualname__,
            operation=b.name,
            declared_on=b.declaring_type.__qualname__,
            http_method=b.http_method,
            content_type=b.content_type.value if b.content_type else None,
            template=b.method_marker_template,
        )
        return b.freeze()

    def _resolve_template(self, contract: type, b: _MethodDescriptorBuilder, template: str) -> None:
        b.method_marker_template = template
        try:
            route_template = self.template_parser.parse(template)
        except ValueError as exc:
            raise InvalidRouteTemplate(
                contract, b.method, template, getattr(exc, "reason", str(exc))
            ) from exc

        if route_template is None:
            return

        b.route_template = route_template
        b.template_parts = list(route_template.parameters)
        for segment in route_template.segments:
            for part in segment.parts:
                if part.is_literal:
                    b.template_keys.append(part.text)
                elif part.is_parameter:
                    b.template_parameter_keys.append(part.name)

    def _validate_put_keys(self, contract: type, b: _MethodDescriptorBuilder) -> None:
        # URL keys bind positionally to the leading method parameters
        for i, key in enumerate(b.template_parameter_keys):
            if i >= len(b.parameters) or b.parameters[i].property_name != key:
                raise PutKeyMismatch(contract, b.method, key)
            if not b.parameters[i].is_simple_type:
                raise PutKeyNotSimpleType(contract, b.method, key, b.parameters[i].type_name)


def compile_contracts(
    contracts: Iterable[type],
    *,
    metadata_provider: Optional[ModelMetadataProvider] = None,
    template_parser: Optional[RouteTemplateParser] = None,
    root_contract: type = ApiContract,
) -> DescriptorSet:
    compiler = DescriptorCompiler(
        metadata_provider=metadata_provider,
        template_parser=template_parser,
        root_contract=root_contract,
    )
    return compiler.compile(contracts)
