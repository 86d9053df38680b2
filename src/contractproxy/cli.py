from __future__ import annotations

import json
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from contractproxy.compiler.compiler import DescriptorCompiler
from contractproxy.compiler.descriptors import ProxyDescriptor, ProxyMethodDescriptor
from contractproxy.compiler.errors import CompilationError
from contractproxy.logging_utils import configure_logging
from contractproxy.orchestrator.pipeline import CompileResult, ContractLoadError, run_compile
from contractproxy.settings import get_settings

app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, help="Log level (default: CONTRACTPROXY_LOG_LEVEL)"),
    log_format: Optional[str] = typer.Option(None, help="Log format: console|plain|json"),
) -> None:
    settings = get_settings()
    fmt = (log_format or settings.log_format).lower().strip()
    if fmt not in ("console", "plain", "json"):
        raise typer.BadParameter("log format must be one of: console, plain, json")
    configure_logging(log_level or settings.log_level, fmt)  # type: ignore[arg-type]


def _compile_or_exit(targets: list[str]) -> CompileResult:
    try:
        return run_compile(targets, DescriptorCompiler())
    except ContractLoadError as exc:
        console.print(f"[bold red]load error[/bold red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=2)
    except CompilationError as exc:
        console.print(f"[bold red]{type(exc).__name__}[/bold red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1)


@app.command()
def check(
    targets: list[str] = typer.Argument(..., help="module or module:Class targets"),
) -> None:
    """Compile the contracts and report the first invalid declaration."""
    result = _compile_or_exit(targets)
    console.print(
        f"[bold green]ok[/bold green] {len(result.contracts)} contract(s), "
        f"{result.operation_count} operation(s)"
    )


def _request_path(descriptor: ProxyDescriptor, m: ProxyMethodDescriptor) -> str:
    if m.method_marker_template:
        return f"{descriptor.route}/{m.method_marker_template.lstrip('/')}"
    return f"{descriptor.route}/{m.name}"


@app.command()
def describe(
    targets: list[str] = typer.Argument(..., help="module or module:Class targets"),
    contract: Optional[str] = typer.Option(None, help="Only show the contract with this class name"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    """Print the compiled request descriptors."""
    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")

    result = _compile_or_exit(targets)
    descriptors = [
        d for d in result.descriptors.values() if contract is None or d.contract.__name__ == contract
    ]

    if fmt == "json":
        payload = {"contracts": [d.to_dict() for d in descriptors]}
        console.print(json.dumps(payload, indent=2), markup=False, highlight=False, soft_wrap=True)
        return

    for d in descriptors:
        table = Table(
            title=f"{d.contract.__qualname__}  region={d.region_key}  route={d.route}",
            show_header=True,
            header_style="bold",
        )
        table.add_column("VERB", no_wrap=True)
        table.add_column("OPERATION")
        table.add_column("PATH")
        table.add_column("CONTENT-TYPE", no_wrap=True)
        table.add_column("TIMEOUT", no_wrap=True)
        table.add_column("HEADERS")
        table.add_column("PARAMS")

        for m in d:
            params = ", ".join(f"{p.property_name}: {p.type_name}" for p in m.parameters)
            headers = ", ".join(f"{k}: {v}" for k, v in m.headers.items())
            table.add_row(
                m.http_method,
                m.name,
                _request_path(d, m),
                m.content_type.value if m.content_type else "-",
                f"{m.timeout.total_seconds():g}s" if m.timeout is not None else "-",
                headers or "-",
                params or "-",
            )
        console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
