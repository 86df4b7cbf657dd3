"""Typer CLI entrypoint and command definitions for navguard."""

import json
from typing import Any

import typer

from navguard.core.defaults import DEFAULT_DATA_DIR

app = typer.Typer()


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, sort_keys=True))


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Log decision traces at this level to stderr"),
) -> None:
    """URL and navigation policy for the messenger desktop shell."""
    if log_level is None:
        return

    from navguard.core.logging import configure_logging

    try:
        configure_logging(log_level)
    except ValueError:
        typer.echo(f"Unknown log level: {log_level}", err=True)
        raise typer.Exit(code=1)


# -- URL classification ---------------------------------------------------------


@app.command("classify")
def classify_cmd(url: str = typer.Argument(..., help="URL or path to classify")) -> None:
    """Print every classifier verdict for URL."""
    from navguard.policy import urls

    site_key = urls.site_key_for_url(url)
    _echo_json({
        "site_key": site_key.value if site_key else None,
        "is_messages_route": urls.is_messages_route(url),
        "is_media_viewer_route": urls.is_media_viewer_route(url),
        "is_auth_route": urls.is_auth_route(url),
        "is_home_page": urls.is_home_page(url),
        "is_policy_excluded_path": urls.is_policy_excluded_path(url),
        "is_thread_route": urls.is_thread_route(url),
        "should_open_in_app": urls.should_open_in_app(url),
        "messages_url": urls.to_messages_url(url),
    })


@app.command("decide")
def decide_cmd(
    url: str = typer.Argument(..., help="Target URL"),
    action: str = typer.Option("open-window", "--action", help="navigate | open-window"),
) -> None:
    """Print the disposition for a navigation or new-window request."""
    from navguard.core.types import RequestedAction
    from navguard.policy.window_open import decide_window_open_action

    try:
        requested = RequestedAction(action)
    except ValueError:
        typer.echo(f"Unknown action: {action} (expected navigate or open-window)", err=True)
        raise typer.Exit(code=1)

    result = decide_window_open_action(url, requested)
    _echo_json({"url": url, "requested_action": requested.value, "action": result.value})


@app.command("messages-url")
def messages_url_cmd(url: str = typer.Argument(..., help="URL to canonicalize")) -> None:
    """Print URL rewritten into the messages namespace."""
    from navguard.policy.urls import to_messages_url

    typer.echo(to_messages_url(url))


@app.command("bootstrap")
def bootstrap_cmd(
    url: str = typer.Argument(..., help="Navigation target inside the popup"),
    action: str = typer.Option(..., "--action", help="Ordinary disposition of URL"),
    started_at: int = typer.Option(..., "--started-at", help="Popup creation time (epoch ms)"),
    count: int = typer.Option(0, "--count", help="Navigations already seen in the popup"),
    seen_call_safe: bool = typer.Option(False, "--seen-call-safe", help="A call-safe hop was already seen"),
    now: int = typer.Option(..., "--now", help="Current time (epoch ms)"),
) -> None:
    """Evaluate one navigation inside an about:blank bootstrap popup."""
    from navguard.core.types import WindowOpenAction
    from navguard.policy.bootstrap import should_allow_bootstrap_navigation

    try:
        disposition = WindowOpenAction(action)
    except ValueError:
        typer.echo(f"Unknown action: {action}", err=True)
        raise typer.Exit(code=1)

    decision = should_allow_bootstrap_navigation(
        url, disposition, started_at, count, seen_call_safe, now,
    )
    _echo_json(decision.model_dump(mode="json"))


# -- config ---------------------------------------------------------------------
config_app = typer.Typer()
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show_cmd(
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory holding config.json"),
) -> None:
    """Print the effective configuration."""
    from navguard.core.config import ShellConfig

    _echo_json(ShellConfig(data_dir).as_dict())


@config_app.command("set")
def config_set_cmd(
    key: str = typer.Argument(..., help="Config key"),
    value: str = typer.Argument(..., help="New value"),
    data_dir: str = typer.Option(DEFAULT_DATA_DIR, help="Directory holding config.json"),
) -> None:
    """Validate and persist one configuration value."""
    from navguard.core.config import ShellConfig

    cfg = ShellConfig(data_dir)
    try:
        updated = cfg.update({key: value})
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    _echo_json(updated)


if __name__ == "__main__":
    app()
