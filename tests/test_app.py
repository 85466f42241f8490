"""Tests for the HTTP API."""

import base64
import sys
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from pos_print_bridge import app as app_module
from pos_print_bridge.discovery import DiscoveryService, PrinterRegistry
from pos_print_bridge.dispatch import DispatchRouter
from pos_print_bridge.models import PrinterRecord, PrinterStatus, TransportKind
from pos_print_bridge.transports import RenderSurface

RECEIPT = [
    {'type': 'setStyles', 'align': 'CT', 'style': 'B'},
    {'type': 'println', 'content': 'Thank you'},
    {'type': 'cut'},
]


@pytest.fixture
def surface():
    return MagicMock(spec=RenderSurface, document_in_use=False)


@pytest.fixture
def client(registry, surface):
    router = DispatchRouter(registry, surface_factory=lambda record, options: surface)
    app_module.init_app(registry=registry, discovery=DiscoveryService(registry), router=router)
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as test_client:
        yield test_client
    app_module.init_app(registry=PrinterRegistry())


class TestInfo:

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'online'
        assert body['printers'] == 3
        assert body['discovery_running'] is False

    def test_api_info(self, client):
        body = client.get('/api').get_json()
        assert body['endpoints']['print'] == '/api/print'


class TestPrinters:

    def test_list(self, client):
        body = client.get('/api/printers').get_json()
        assert body['success'] is True
        assert body['count'] == 3
        ids = {p['id'] for p in body['printers']}
        assert 'usb-04b8-0e15' in ids
        assert set(body['printers'][0]) == {
            'id', 'name', 'transportKind', 'status', 'description',
            'isDefault', 'isVirtual', 'osQueueName',
        }

    def test_legacy_list_is_array(self, client):
        body = client.get('/printers').get_json()
        assert isinstance(body, list)
        assert len(body) == 3

    def test_get_printer(self, client):
        body = client.get('/api/printers/mdns-kitchen.local-9100').get_json()
        assert body['printer']['ip'] == '192.168.1.60'
        assert body['printer']['transport_kind'] == 'MdnsLan'

    def test_get_unknown_printer(self, client):
        response = client.get('/api/printers/nope')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_probe_printer(self, client, registry, lan_record):
        discovery = MagicMock()
        discovery.test_printer.return_value = replace(lan_record, status=PrinterStatus.CONNECTED)
        app_module.init_app(discovery=discovery)

        body = client.post('/api/printers/mdns-kitchen.local-9100/test').get_json()
        assert body['success'] is True
        assert body['printer']['status'] == 'Connected'
        discovery.test_printer.assert_called_once_with(lan_record)

    def test_probe_failure_reports_status(self, client, lan_record):
        discovery = MagicMock()
        discovery.test_printer.return_value = replace(
            lan_record, status=PrinterStatus.CONNECTION_FAILED, status_message='Connection refused')
        app_module.init_app(discovery=discovery)

        body = client.post('/api/printers/mdns-kitchen.local-9100/test').get_json()
        assert body['success'] is False
        assert body['error'] == 'Connection refused'

    def test_rediscover(self, client, virtual_record):
        discovery = MagicMock()
        discovery.run_cycle.return_value = {virtual_record.id: virtual_record}
        discovery.last_report = None
        app_module.init_app(discovery=discovery)

        body = client.post('/api/printers/rediscover').get_json()
        assert body['count'] == 1
        assert body['printers'][0]['name'] == 'Microsoft Print to PDF'

    def test_discovery_report_before_first_cycle(self, client):
        body = client.get('/api/discovery').get_json()
        assert body['report'] is None
        assert body['cycles'] == 0


class TestPrint:

    def test_print_virtual(self, client, surface):
        response = client.post('/api/print', json={
            'printerName': 'Microsoft Print to PDF',
            'commandSequence': RECEIPT,
        })
        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['job']['renderer'] == 'html'
        surface.print.assert_called_once()

    def test_legacy_print_with_template(self, client, surface):
        response = client.post('/print', json={
            'printerName': 'microsoft print to pdf',
            'templateType': 'test',
        })
        assert response.status_code == 200
        surface.print.assert_called_once()

    def test_missing_body(self, client):
        response = client.post('/api/print', data='not json', content_type='text/plain')
        assert response.status_code == 400

    def test_missing_printer_name(self, client):
        response = client.post('/api/print', json={'commandSequence': RECEIPT})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'printerName required'

    def test_missing_commands(self, client):
        response = client.post('/api/print', json={'printerName': 'Microsoft Print to PDF'})
        assert response.status_code == 400

    def test_unknown_command_type(self, client):
        response = client.post('/api/print', json={
            'printerName': 'Microsoft Print to PDF',
            'commandSequence': [{'type': 'sparkle'}],
        })
        assert response.status_code == 400

    def test_unknown_template(self, client):
        response = client.post('/api/print', json={
            'printerName': 'Microsoft Print to PDF',
            'templateType': 'INVOICE',
        })
        assert response.status_code == 500
        assert 'not found' in response.get_json()['error']

    def test_unknown_printer(self, client):
        response = client.post('/api/print', json={
            'printerName': 'Back Office',
            'commandSequence': RECEIPT,
        })
        assert response.status_code == 404
        assert response.get_json()['job']['error_type'] == 'PrinterNotFound'

    def test_render_failure(self, client):
        response = client.post('/api/print', json={
            'printerName': 'usb-04b8-0e15',
            'commandSequence': [{'type': 'image', 'path': '/nonexistent/logo.png'}],
        })
        assert response.status_code == 500
        assert response.get_json()['job']['stage'] == 'render'


class TestApiKey:

    def test_rejects_missing_key(self, client):
        with patch.object(app_module, 'API_KEY', 'secret'):
            response = client.post('/api/print', json={
                'printerName': 'Microsoft Print to PDF',
                'commandSequence': RECEIPT,
            })
        assert response.status_code == 401

    def test_bearer_header(self, client):
        with patch.object(app_module, 'API_KEY', 'secret'):
            response = client.post('/api/print', headers={'Authorization': 'Bearer secret'}, json={
                'printerName': 'Microsoft Print to PDF',
                'commandSequence': RECEIPT,
            })
        assert response.status_code == 200

    def test_body_key(self, client):
        with patch.object(app_module, 'API_KEY', 'secret'):
            response = client.post('/api/print', json={
                'api_key': 'secret',
                'printerName': 'Microsoft Print to PDF',
                'commandSequence': RECEIPT,
            })
        assert response.status_code == 200

    def test_reads_stay_open(self, client):
        with patch.object(app_module, 'API_KEY', 'secret'):
            assert client.get('/api/printers').status_code == 200


class TestRender:

    def test_escpos_is_base64(self, client):
        body = client.post('/api/render', json={
            'format': 'escpos',
            'commandSequence': RECEIPT,
        }).get_json()
        assert body['success'] is True
        assert b'Thank you' in base64.b64decode(body['data'])

    def test_payload(self, client):
        body = client.post('/api/render', json={
            'format': 'payload',
            'commandSequence': RECEIPT,
        }).get_json()
        assert body['format'] == 'payload'
        assert body['data']

    def test_html_template(self, client):
        body = client.post('/api/render', json={'templateType': 'TEST'}).get_json()
        assert body['format'] == 'html'
        assert 'PRINT TEST' in body['data']

    def test_invalid_format(self, client):
        response = client.post('/api/render', json={'format': 'pdf', 'commandSequence': RECEIPT})
        assert response.status_code == 400


class IPPError(Exception):
    pass


@pytest.mark.skipif(sys.platform == 'win32', reason='CUPS code path')
class TestOsQueuePrint:

    @pytest.fixture
    def kitchen_client(self):
        record = PrinterRecord(id='os-kitchen-80mm', display_name='Kitchen-80mm',
                               transport_kind=TransportKind.OS_QUEUE_PHYSICAL,
                               os_queue_name='Kitchen-80mm')
        registry = PrinterRegistry({record.id: record})
        app_module.init_app(registry=registry)
        with app_module.app.test_client() as test_client:
            yield test_client
        app_module.init_app(registry=PrinterRegistry())

    @pytest.fixture
    def cups_module(self):
        module = MagicMock()
        module.IPPError = IPPError
        module.Connection.return_value.getPrinters.return_value = {
            'Kitchen-80mm': {'printer-state': 3, 'printer-is-accepting-jobs': True},
        }
        with patch.dict('sys.modules', {'cups': module}):
            yield module

    def test_println_and_cut_spooled_once(self, kitchen_client, cups_module):
        spooled = []

        def print_file(queue, path, title, options):
            with open(path, 'rb') as f:
                spooled.append((queue, f.read(), options))
            return 12

        cups_module.Connection.return_value.printFile.side_effect = print_file
        response = kitchen_client.post('/print', json={
            'printerName': 'Kitchen-80mm',
            'commandSequence': [
                {'type': 'println', 'content': 'HELLO'},
                {'type': 'cut'},
            ],
            'renderOptions': {'copies': 2},
        })

        assert response.status_code == 200
        job = response.get_json()['job']
        assert job['renderer'] == 'live'
        assert job['transport_kind'] == 'OsQueuePhysical'
        assert job['instructions'] == ['println', 'cut']

        [(queue, data, options)] = spooled
        assert queue == 'Kitchen-80mm'
        assert data.count(b'HELLO') == 1
        assert options['copies'] == '2'

    def test_stopped_queue_is_not_spooled(self, kitchen_client, cups_module):
        cups_module.Connection.return_value.getPrinters.return_value = {
            'Kitchen-80mm': {'printer-state': 5, 'printer-state-message': 'Paper out'},
        }
        response = kitchen_client.post('/print', json={
            'printerName': 'Kitchen-80mm',
            'commandSequence': [{'type': 'println', 'content': 'HELLO'}],
        })
        assert response.status_code == 502
        assert 'Paper out' in response.get_json()['error']
        cups_module.Connection.return_value.printFile.assert_not_called()
