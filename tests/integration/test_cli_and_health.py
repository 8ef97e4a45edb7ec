"""
Integration tests for the health endpoint, error handlers and CLI commands
"""

import pytest

from crm_database import Owner, Property


class TestHealthCheck:

    def test_health(self, client, db_session):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json() == {
            'status': 'healthy',
            'service': 'parcel-crm',
            'database': 'connected',
        }

    def test_unknown_path_returns_json_404(self, client, db_session):
        response = client.get('/api/does-not-exist')

        assert response.status_code == 404
        assert response.get_json() == {'error': 'Not found'}

    def test_request_id_header(self, client, db_session):
        response = client.get('/health', headers={'X-Request-ID': 'req-42'})
        assert response.status_code == 200


class TestCommands:

    @pytest.fixture
    def runner(self, app):
        return app.test_cli_runner()

    def test_import_csv(self, runner, db_session, tmp_path):
        csv_path = tmp_path / 'owners.csv'
        csv_path.write_text(
            'OwnerName,Address,City,State,Zip,Wireless 1\n'
            'John Smith,123 Main St,Springfield,IL,62701,(206) 555-0101\n'
            ',9 Elm Ct,Springfield,IL,62701,\n'
        )

        result = runner.invoke(args=['import-csv', str(csv_path)])

        assert result.exit_code == 0
        assert 'CSV processed successfully: 1 rows processed' in result.output
        assert 'Owners: 1 created, 0 merged' in result.output
        assert db_session.query(Owner).count() == 1
        assert db_session.query(Property).count() == 1

    def test_import_csv_with_mapping(self, runner, db_session, tmp_path):
        csv_path = tmp_path / 'mapped.csv'
        csv_path.write_text('Owner,Street,Town\nJane Doe,9 Elm Ct,Springfield\n')

        result = runner.invoke(args=[
            'import-csv', str(csv_path),
            '--mapping', '{"Owner": "full_name", "Street": "street_address", "Town": "city"}'
        ])

        assert result.exit_code == 0
        assert db_session.query(Property).one().zip_code == -1

    def test_import_csv_bad_mapping(self, runner, db_session, tmp_path):
        csv_path = tmp_path / 'owners.csv'
        csv_path.write_text('OwnerName,Address\nJohn Smith,1 Oak Ave\n')

        result = runner.invoke(args=['import-csv', str(csv_path), '--mapping', '{nope'])

        assert result.exit_code == 2
        assert db_session.query(Owner).count() == 0

    def test_import_csv_missing_file(self, runner, db_session, tmp_path):
        result = runner.invoke(args=['import-csv', str(tmp_path / 'absent.csv')])
        assert result.exit_code == 2

    def test_geocoding_stats(self, runner, property_record, geocoded_property):
        result = runner.invoke(args=['geocoding-stats'])

        assert result.exit_code == 0
        assert 'Total properties: 2' in result.output
        assert 'With coordinates: 1' in result.output
        assert 'Without coordinates: 1' in result.output

    def test_geocode_missing_with_geocoding_disabled(self, runner, property_record):
        result = runner.invoke(args=['geocode-missing', '--batch-size', '5', '--delay', '0'])

        assert result.exit_code == 0
        assert 'Properties without coordinates: 1' in result.output
        assert 'Geocoded: 0, failed: 1' in result.output
