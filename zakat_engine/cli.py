"""Flask CLI commands for running the engine from the command line."""
import json

import click
from flask import current_app
from flask.cli import with_appcontext

from zakat_engine.errors import InvalidPolicy, UnknownRecipientCategory
from zakat_engine.services.calc import parse_flag
from zakat_engine.services.distribution import plan_distribution
from zakat_engine.services.engine import ZakatEngine
from zakat_engine.services.fx import RateTable
from zakat_engine.services.nisab import MetalPrices, evaluate_both


def _echo_json(data: dict):
    click.echo(json.dumps(data, indent=2))


@click.command('calculate')
@click.argument('input_path', type=click.Path(exists=True))
@click.option('--currency', default=None, help='Display currency (defaults to ZAKAT_DEFAULT_CURRENCY)')
@click.option('--policy', default=None, help='Eligibility policy: either or lower_of_two')
@click.option('--basis', default=None, help='Nisab basis: gold or silver')
@with_appcontext
def calculate_command(input_path, currency, policy, basis):
    """Calculate zakat from a JSON file.

    The file holds {"assets": {...}, "metal_prices": {...}, "rates": {...}},
    the same shape the /api/v1/calculate endpoint accepts.
    """
    with open(input_path) as f:
        try:
            body = json.load(f)
        except ValueError as e:
            raise click.ClickException(f'Invalid JSON in {input_path}: {e}')
    if not isinstance(body, dict):
        raise click.ClickException('Input must be a JSON object')

    assets = body.get('assets') or {}
    prices = body.get('metal_prices')
    rates = body.get('rates')
    for name, value in (('assets', assets), ('metal_prices', prices), ('rates', rates)):
        if value is not None and not isinstance(value, dict):
            raise click.ClickException(f'{name} must be a JSON object')

    config = current_app.config
    include_uncertain = body.get('include_uncertain_receivables')
    if include_uncertain is None:
        include_uncertain = config['ZAKAT_INCLUDE_UNCERTAIN_RECEIVABLES']

    try:
        engine = ZakatEngine(
            assets,
            metal_prices=MetalPrices.from_dict(prices) if prices is not None else None,
            rate_table=RateTable.from_dict(rates) if rates is not None else None,
            display_currency=currency or body.get('currency') or config['ZAKAT_DEFAULT_CURRENCY'],
            nisab_basis=basis or body.get('nisab_basis') or config['ZAKAT_NISAB_BASIS'],
            eligibility_policy=policy or body.get('eligibility_policy') or config['ZAKAT_ELIGIBILITY_POLICY'],
            include_uncertain_receivables=parse_flag(include_uncertain),
        )
    except InvalidPolicy as e:
        raise click.ClickException(str(e))

    result = engine.calculate()
    _echo_json(result.to_dict())
    click.echo(f'Zakat due: {result.zakat_due:.2f} {result.currency.upper()}')


@click.command('nisab')
@click.option('--gold-price', type=float, default=None, help='Gold price per gram')
@click.option('--silver-price', type=float, default=None, help='Silver price per gram')
@click.option('--price-currency', default=None, help='Currency the prices are quoted in')
@click.option('--currency', default=None, help='Display currency')
@click.option('--value', type=float, default=None, help='Wealth to test against the thresholds')
@with_appcontext
def nisab_command(gold_price, silver_price, price_currency, currency, value):
    """Show gold and silver nisab thresholds for the given prices."""
    display = currency or current_app.config['ZAKAT_DEFAULT_CURRENCY']
    prices = MetalPrices(gold=gold_price, silver=silver_price, currency=price_currency or display)
    statuses = evaluate_both(prices, None, display, value)
    for metal, status in statuses.items():
        if not status.is_available:
            click.echo(f'{metal}: unavailable')
            continue
        line = f'{metal}: {status.threshold_value:.2f} {status.currency.upper()} ({status.grams}g)'
        if value is not None:
            line += ' - met' if status.meets_nisab else ' - not met'
        click.echo(line)


@click.command('distribute')
@click.argument('amount', type=float)
@click.option('--mode', default='equal', help='equal or scholar')
@click.option('--set', 'edits', multiple=True, help='Pin a category percentage, e.g. the_poor=40')
@with_appcontext
def distribute_command(amount, mode, edits):
    """Allocate AMOUNT of zakat across the eight asnaf."""
    parsed = []
    for edit in edits:
        category_id, sep, percentage = edit.partition('=')
        if not sep:
            raise click.BadParameter(f'Expected category=percentage, got {edit!r}', param_hint='--set')
        try:
            parsed.append({'category_id': category_id.strip(), 'percentage': float(percentage)})
        except ValueError:
            raise click.BadParameter(f'Percentage must be a number: {percentage!r}', param_hint='--set')

    try:
        allocator = plan_distribution(
            amount,
            mode=mode,
            edits=parsed,
            scholar_weights=current_app.config['ZAKAT_SCHOLAR_WEIGHTS'],
        )
    except (InvalidPolicy, UnknownRecipientCategory) as e:
        raise click.ClickException(str(e))

    for allocation in allocator.allocations():
        click.echo(f'{allocation.category_id}: {allocation.percentage:.2f}% = {allocation.amount:.2f}')
    summary = allocator.summary()
    click.echo(f"Total allocated: {summary['total_allocated']:.2f} ({allocator.mode})")


def register_cli(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(calculate_command)
    app.cli.add_command(nisab_command)
    app.cli.add_command(distribute_command)
