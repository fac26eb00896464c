# expense_tracker/cli.py
import logging
import os
from datetime import date

import click
from dotenv import load_dotenv

from expense_tracker.config import DEFAULT_CONFIG, load_config, save_config
from expense_tracker.database import create_transaction, fetch_all, summary_stats
from expense_tracker.errors import ConfigError
from expense_tracker.exports import EXPORT_FORMATS, render
from expense_tracker.manual import load_manual_transactions


def setup_logging(level):
    logging.basicConfig(
        level=str(level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _parse_date_option(ctx, param, value):
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got '{value}'")


@click.group()
@click.option(
    '--config', 'config_path',
    default='config.yaml',
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (optional; defaults are used when missing)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file with EXPENSE_TRACKER_* settings'
)
@click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='SQLite database file (overrides config)'
)
@click.pass_context
def main(ctx, config_path, env_file, db_path):
    """Expense tracker REST API and maintenance commands."""
    if env_file:
        load_dotenv(env_file)
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))
    if db_path:
        cfg['db_path'] = db_path
    setup_logging(cfg['logging']['level'])
    ctx.obj = {'config': cfg, 'config_path': config_path}


@main.command()
@click.option('--host', default=None, help='Host to bind (default from config)')
@click.option('--port', default=None, type=int, help='Port to bind (default from config)')
@click.pass_obj
def serve(obj, host, port):
    """Run the HTTP API with uvicorn."""
    import uvicorn
    from webapp.main import create_app

    cfg = obj['config']
    host = host or cfg['host']
    port = port or cfg['port']
    app = create_app(cfg)
    click.echo(
        f"Expense tracker API running at http://{host}:{port} "
        f"(db: {cfg['db_path']}, env: {cfg['environment']})"
    )
    uvicorn.run(app, host=host, port=port, log_level=str(cfg['logging']['level']).lower())


@main.command(name='import')
@click.argument('yaml_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def import_transactions(obj, yaml_file):
    """Store every transaction listed in YAML_FILE."""
    try:
        entries = load_manual_transactions(yaml_file)
    except ValueError as e:
        raise click.ClickException(str(e))
    db_path = obj['config']['db_path']
    for entry in entries:
        create_transaction(db_path, entry)
    click.echo(f"Imported {len(entries)} transaction(s) into {db_path}.")


@main.command()
@click.option(
    '--format', 'fmt',
    default='csv',
    type=click.Choice(EXPORT_FORMATS),
    help='Export format'
)
@click.option(
    '--output', 'output_path',
    required=True,
    type=click.Path(dir_okay=False, writable=True),
    help='File to write'
)
@click.pass_obj
def export(obj, fmt, output_path):
    """Write all transactions to a JSON, CSV or Excel file."""
    transactions = fetch_all(obj['config']['db_path'])
    with open(output_path, 'wb') as f:
        f.write(render(transactions, fmt))
    click.echo(f"Exported {len(transactions)} transaction(s) to {output_path}.")


@main.command()
@click.option('--start-date', default=None, callback=_parse_date_option, help='YYYY-MM-DD (inclusive)')
@click.option('--end-date', default=None, callback=_parse_date_option, help='YYYY-MM-DD (inclusive)')
@click.pass_obj
def summary(obj, start_date, end_date):
    """Print total income, expense and balance."""
    stats = summary_stats(obj['config']['db_path'], start_date=start_date, end_date=end_date)
    click.echo(f"Income:       {stats['totalIncome']:.2f}")
    click.echo(f"Expense:      {stats['totalExpense']:.2f}")
    click.echo(f"Balance:      {stats['balance']:.2f}")
    click.echo(f"Transactions: {stats['transactionCount']}")


@main.command(name='init-config')
@click.option('--force', is_flag=True, default=False, help='Overwrite an existing file')
@click.pass_obj
def init_config(obj, force):
    """Write the default configuration to --config."""
    path = obj['config_path']
    if os.path.exists(path) and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    save_config(DEFAULT_CONFIG, path)
    click.echo(f"Wrote default configuration to {path}.")
