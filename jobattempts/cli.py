"""
CLI interface for jobattempts.

Provides commands to resolve framework names and inspect the attempt
history of a job (live attempt plus captured historical attempts).
"""

import json
import sys

import click

from jobattempts import __version__
from jobattempts.errors import JobAttemptsError, UnexpectedCallError
from jobattempts.utils import print_error, print_success


@click.group()
@click.version_option(version=__version__, prog_name="jobattempts")
@click.pass_context
def main(ctx):
    """
    jobattempts - Retry-attempt history of orchestrator jobs.
    """
    from jobattempts.config import load_config
    from jobattempts.utils import setup_logging

    ctx.ensure_object(dict)
    try:
        config = load_config()
    except Exception as e:
        # init and resolve work without a config; lookups check ctx.obj later
        ctx.obj["config_error"] = str(e)
        return

    ctx.obj["config"] = config
    setup_logging(config.log_level, config.log_format)


def _get_reconciler(ctx):
    from jobattempts.reconciler import build_reconciler

    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'jobattempts init' to create a configuration file.", err=True)
        raise SystemExit(1)
    return build_reconciler(ctx.obj["config"])


def _emit(result) -> None:
    click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    if not result.is_found:
        raise SystemExit(1)


def _run_lookup(lookup, *args):
    try:
        return lookup(*args)
    except UnexpectedCallError as e:
        click.echo(f"✗ {e}. Set snapshot_backend in config.yaml.", err=True)
        raise SystemExit(1)
    except JobAttemptsError as e:
        raise click.ClickException(f"Lookup failed: {e}")


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize jobattempts configuration."""
    from jobattempts.config import get_jobattempts_home
    import yaml

    home = get_jobattempts_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = {
        "api_server_uri": "https://localhost:6443",
        "namespace": "default",
        "bearer_token_env": "K8S_BEARER_TOKEN",
        "verify_tls": True,
        "request_timeout": 30,
        "object_kind": "Framework",
        "snapshot_backend": "bigquery",
        "snapshot_table": "fc_objectsnapshots",
        "bigquery_project": "my-project",
        "bigquery_dataset": "framework_snapshots",
        "sqlite_path": None,
        "log_level": "INFO",
        "log_format": "structured",
        "env_file": str(home / ".env"),
    }
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# K8S_BEARER_TOKEN=...\n# GOOGLE_APPLICATION_CREDENTIALS=...\n")

    click.echo(f"Initialized jobattempts config at {cfg_path}")


@main.command("resolve")
@click.argument("name")
def resolve(name: str):
    """Print the framework object name a job name resolves to."""
    from jobattempts.naming import encode_name

    click.echo(encode_name(name))


@main.command("list")
@click.argument("name")
@click.pass_context
def list_attempts(ctx, name: str):
    """
    List all attempts of a job, latest first.

    Examples:

        jobattempts list alice~train-resnet
    """
    reconciler = _get_reconciler(ctx)
    _emit(_run_lookup(reconciler.list_attempts, name))


@main.command("get")
@click.argument("name")
@click.argument("index", type=click.IntRange(min=0))
@click.pass_context
def get_attempt(ctx, name: str, index: int):
    """
    Show a single attempt of a job.

    Examples:

        jobattempts get alice~train-resnet 0
    """
    reconciler = _get_reconciler(ctx)
    _emit(_run_lookup(reconciler.get_attempt, name, index))


@main.command("health")
@click.pass_context
def health(ctx):
    """Check connectivity to the snapshot store."""
    reconciler = _get_reconciler(ctx)
    if reconciler.health_check():
        print_success("snapshot store healthy")
        return
    print_error("snapshot store unhealthy")
    sys.exit(1)


if __name__ == "__main__":
    main()
