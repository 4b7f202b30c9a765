import structlog


def bind_scenario(scenario: str) -> None:
    """Tag every log line of the current task with the scenario name."""
    structlog.contextvars.bind_contextvars(scenario=scenario)


def bind_app(app_name: str) -> None:
    structlog.contextvars.bind_contextvars(app_name=app_name)


def get_scenario() -> str | None:
    """Get scenario name from current context."""
    return structlog.contextvars.get_contextvars().get("scenario")


def clear_context() -> None:
    """Clear scenario-scoped context variables."""
    structlog.contextvars.unbind_contextvars("scenario", "app_name")
