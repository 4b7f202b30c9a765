import typer

from deploy_harness.commands import scenarios

app = typer.Typer(
    name="deploy-harness",
    help="Deploy fixture apps and verify what they serve",
    add_completion=False,
)

app.command()(scenarios.run)
app.command()(scenarios.suite)


if __name__ == "__main__":
    app()
