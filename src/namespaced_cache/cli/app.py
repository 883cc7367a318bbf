import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated

import typer

from namespaced_cache.cache.facade import DEFAULT, Cache
from namespaced_cache.cache.factory import create_configured_cache
from namespaced_cache.cli._logging import configure_logging
from namespaced_cache.cli._output import print_error, print_invalidated, print_keys, print_set_result, print_value
from namespaced_cache.config import create_config
from namespaced_cache.exceptions import CacheError

app = typer.Typer(name="nscache", help="Namespaced, time-expiring key-value cache")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    db_path: Annotated[str | None, typer.Option("--db-path", help="SQLite file backing the cache")] = None,
    config_file: Annotated[str, typer.Option("--config", help="YAML config file")] = "config.yaml",
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable DEBUG logging")] = False,
) -> None:
    """Namespaced, time-expiring key-value cache."""
    configure_logging(verbose=verbose)
    ctx.obj = create_config(yaml_path=config_file, db_path=db_path)
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


_NamespaceArg = Annotated[str, typer.Argument(help="Cache namespace")]
_KeyArg = Annotated[str, typer.Argument(help="Cache key")]


def _run[T](ctx: typer.Context, namespace: str, op: Callable[[Cache], Awaitable[T]]) -> tuple[Cache, T]:
    cache = create_configured_cache(namespace, ctx.obj)

    async def _go() -> T:
        try:
            return await op(cache)
        finally:
            await cache.aclose()

    try:
        return cache, asyncio.run(_go())
    except CacheError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@app.command("set")
def set_cmd(
    ctx: typer.Context,
    namespace: _NamespaceArg,
    key: _KeyArg,
    value: Annotated[str, typer.Argument(help="Value to cache")],
    ttl: Annotated[float | None, typer.Option("--ttl", help="Seconds until expiration")] = None,
    no_expire: Annotated[bool, typer.Option("--no-expire", help="Never expire this item")] = False,
) -> None:
    """Cache a value."""
    if ttl is not None and no_expire:
        print_error("--ttl and --no-expire are mutually exclusive")
        raise typer.Exit(code=2)
    seconds = None if no_expire else (DEFAULT if ttl is None else ttl)
    cache, _ = _run(ctx, namespace, lambda c: c.set(key, value, seconds_until_expiration=seconds))
    effective = cache.options.default_seconds_until_expiration if seconds is DEFAULT else seconds
    print_set_result(namespace, key, effective)


@app.command("get")
def get_cmd(ctx: typer.Context, namespace: _NamespaceArg, key: _KeyArg) -> None:
    """Print a cached value; exits 1 on a miss."""
    _, value = _run(ctx, namespace, lambda c: c.get(key))
    if value is None:
        print_error(f"no valid value for '{key}' in '{namespace}'")
        raise typer.Exit(code=1)
    print_value(value)


@app.command("keys")
def keys_cmd(ctx: typer.Context, namespace: _NamespaceArg) -> None:
    """List the currently valid keys of a namespace."""
    _, keys = _run(ctx, namespace, lambda c: c.keys())
    print_keys(namespace, keys)


@app.command()
def invalidate(ctx: typer.Context, namespace: _NamespaceArg, key: _KeyArg) -> None:
    """Remove a key from the cache."""
    _run(ctx, namespace, lambda c: c.invalidate(key))
    print_invalidated(namespace, key)
