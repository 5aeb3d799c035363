"""Config commands -- view and modify the user's client defaults.

Provides the ``httploop config`` group. ``show`` prints the effective
configuration after every precedence layer (user file, ``./httploop.json``,
``HTTPLOOP_*`` variables) is applied; ``set`` and ``reset`` change the user
file only.
"""

from __future__ import annotations

from typing import Any

import typer

from httploop.output import error, get_output, info, success

config_app = typer.Typer(no_args_is_help=True)

_NONE_VALUES = ("none", "null", "")


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration.

    Example::

        httploop config show
        HTTPLOOP_TIMEOUT=5 httploop config show
    """
    from httploop.config import get_config_dir, resolve_config

    config = resolve_config()
    info(f"Config directory: {get_config_dir()}")
    get_output().print_json(config.model_dump(mode="json"))


def _coerce(key: str, current: Any, value: str) -> Any:
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes", "on")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float) or (current is None and key == "timeout"):
        return None if value.lower() in _NONE_VALUES else float(value)
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key, e.g. 'max_redirects'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a value in the user config file.

    The value is coerced to the current field type and the result is
    validated before it is saved.

    Example::

        httploop config set max_redirects 10
        httploop config set timeout none
    """
    from httploop.config import load_config, save_config
    from httploop.models import ClientConfig

    config = load_config()
    data = config.model_dump(mode="json")
    if key not in data or isinstance(data[key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        data[key] = _coerce(key, data[key], value)
    except ValueError:
        error(f"Invalid value for {key}: {value}")
        raise typer.Exit(code=2) from None

    try:
        new_config = ClientConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {data[key]}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the user config file to defaults."""
    from httploop.config import save_config
    from httploop.models import ClientConfig

    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_config(ClientConfig())
    success("Configuration reset to defaults.")
