# commands.py

import json

import click
from flask import current_app
from flask.cli import with_appcontext


@click.command('import-csv')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--mapping', default=None, help='Column mapping as a JSON object {csvHeader: field}')
@with_appcontext
def import_csv(path, mapping):
    """Import owners, properties and contacts from a CSV file"""
    column_mapping = {}
    if mapping:
        try:
            column_mapping = json.loads(mapping)
        except ValueError:
            raise click.BadParameter('Invalid column mapping format', param_hint='--mapping')

    upload_service = current_app.services.get('csv_upload')
    with open(path, 'rb') as csv_file:
        result = upload_service.process_csv_upload(csv_file.read(), column_mapping)

    if not result.success:
        raise click.ClickException(result.message)

    click.echo(f'{result.message}: {result.processed_rows} rows processed')
    click.echo(f'  Owners: {result.created_owners} created, {result.merged_owners} merged')
    click.echo(f'  Properties: {result.created_properties} created, {result.merged_properties} merged')
    click.echo(f'  Contacts created: {result.created_contacts}')
    click.echo(f'  Geocoded: {result.geocoded_properties}')

    for error in result.errors:
        click.echo(f"  Row {error['row']} ({error['address']}): {'; '.join(error['errors'])}", err=True)
    for duplicate in result.duplicates:
        click.echo(f"  Row {duplicate['row']} ({duplicate['address']}): {duplicate['message']}", err=True)
    for message in result.geocoding_errors:
        click.echo(f'  {message}', err=True)


@click.command('geocode-missing')
@click.option('--batch-size', default=10, show_default=True, help='Properties per batch')
@click.option('--delay', default=1.0, show_default=True, help='Seconds between batches')
@with_appcontext
def geocode_missing(batch_size, delay):
    """Geocode every property that has no coordinates"""
    batch_service = current_app.services.get('batch_geocoding')
    result = batch_service.batch_geocode_all_properties(batch_size=batch_size, delay_between_batches=delay)

    click.echo(f'Properties without coordinates: {result.properties_without_coordinates}')
    click.echo(f'Geocoded: {result.geocoded_successfully}, failed: {result.geocoding_failed}')
    for message in result.errors:
        click.echo(f'  {message}', err=True)


@click.command('geocoding-stats')
@with_appcontext
def geocoding_stats():
    """Show how many properties have coordinates"""
    stats = current_app.services.get('batch_geocoding').get_geocoding_stats()
    click.echo(f'Total properties: {stats.total_properties}')
    click.echo(f'With coordinates: {stats.properties_with_coordinates}')
    click.echo(f'Without coordinates: {stats.properties_without_coordinates}')


def init_app(app):
    """Register commands with the Flask app"""
    app.cli.add_command(import_csv)
    app.cli.add_command(geocode_missing)
    app.cli.add_command(geocoding_stats)
