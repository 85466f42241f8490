"""
POS Print Bridge - Main Application
===================================

Local HTTP bridge that discovers receipt printers and prints command
sequences on them.

Run: python -m pos_print_bridge
"""

import base64
import logging
import platform
import socket
import sys
from datetime import datetime
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS

from . import __version__
from .config import PORT, HOST, DEBUG, API_KEY, LOG_LEVEL, DISCOVERY_INTERVAL
from .discovery import DiscoveryService, PrinterRegistry
from .dispatch import DispatchRouter
from .errors import CommandParseError, PrintBridgeError
from .models import CommandSequence, PrinterStatus, RenderOptions
from .renderers import EscposBufferRenderer, HtmlRenderer, PayloadRenderer
from .templates import render_template

logger = logging.getLogger(__name__)

# =============================================================================
# Application Setup
# =============================================================================

app = Flask(__name__)
CORS(app)

_registry = PrinterRegistry()
_discovery = DiscoveryService(_registry)
_router = DispatchRouter(_registry)


def init_app(registry: Optional[PrinterRegistry] = None,
             discovery: Optional[DiscoveryService] = None,
             router: Optional[DispatchRouter] = None):
    """Swap the registry, discovery service or router used by the routes."""
    global _registry, _discovery, _router
    if registry is not None:
        _registry = registry
    _discovery = discovery or DiscoveryService(_registry)
    _router = router or DispatchRouter(_registry)
    return app


def _check_api_key():
    """Validate API key from request. No key configured means open access."""
    if not API_KEY:
        return True

    data = request.get_json(silent=True) or {}
    auth_header = request.headers.get('Authorization', '')

    # Check body
    if isinstance(data, dict) and data.get('api_key') == API_KEY:
        return True

    # Check header (Bearer token)
    if auth_header.startswith('Bearer ') and auth_header[7:] == API_KEY:
        return True

    return False


def _error(e: PrintBridgeError):
    return jsonify({'success': False, 'error': e.message or str(e)}), e.http_status


def _sequence_from_request(data: dict) -> CommandSequence:
    """Build the command sequence from either a template or a raw sequence."""
    if data.get('templateType'):
        return render_template(data['templateType'], data.get('templateData') or {})
    if 'commandSequence' not in data:
        raise CommandParseError('commandSequence or templateType required')
    return CommandSequence.from_list(data['commandSequence'])


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.route('/api', methods=['GET'])
def api_info():
    """API info (JSON)."""
    return jsonify({
        'service': 'POS Print Bridge',
        'version': __version__,
        'status': 'running',
        'endpoints': {
            'health': '/health',
            'printers': '/api/printers',
            'rediscover': '/api/printers/rediscover',
            'discovery': '/api/discovery',
            'print': '/api/print',
            'render': '/api/render',
        }
    })


@app.route('/health', methods=['GET'])
def health():
    """Health check with system info."""
    return jsonify({
        'status': 'online',
        'version': __version__,
        'hostname': socket.gethostname(),
        'platform': platform.system(),
        'python': sys.version.split()[0],
        'printers': len(_registry),
        'discovery_running': _discovery.running,
        'timestamp': datetime.now().isoformat(),
    })


# =============================================================================
# Printers
# =============================================================================

@app.route('/printers', methods=['GET'])
def legacy_printers():
    """Plain printer array for front-ends that expect one."""
    return jsonify([p.to_api_dict() for p in _registry.records()])


@app.route('/api/printers', methods=['GET'])
def list_printers():
    """List discovered printers."""
    printers = [p.to_api_dict() for p in _registry.records()]
    return jsonify({
        'success': True,
        'printers': printers,
        'count': len(printers),
    })


@app.route('/api/printers/rediscover', methods=['POST'])
def rediscover_printers():
    """Run a discovery cycle now and return the new printer list."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    snapshot = _discovery.run_cycle()
    report = _discovery.last_report
    return jsonify({
        'success': True,
        'printers': [p.to_api_dict() for p in snapshot.values()],
        'count': len(snapshot),
        'report': report.to_dict() if report else None,
    })


@app.route('/api/printers/<printer_id>', methods=['GET'])
def get_printer(printer_id):
    """Get printer details."""
    printer = _registry.get(printer_id)
    if not printer:
        return jsonify({'success': False, 'error': 'Printer not found'}), 404

    return jsonify({
        'success': True,
        'printer': printer.to_dict()
    })


@app.route('/api/printers/<printer_id>/test', methods=['POST'])
def test_printer(printer_id):
    """Probe one printer and store the result."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    printer = _registry.get(printer_id)
    if not printer:
        return jsonify({'success': False, 'error': 'Printer not found'}), 404

    probed = _discovery.test_printer(printer)
    ok = probed.status in (PrinterStatus.CONNECTED, PrinterStatus.READY_VIRTUAL)
    result = {'success': ok, 'printer': probed.to_dict()}
    if not ok:
        result['error'] = probed.status_message or probed.status.value
    return jsonify(result)


@app.route('/api/discovery', methods=['GET'])
def discovery_report():
    """Report of the last discovery cycle."""
    report = _discovery.last_report
    return jsonify({
        'success': True,
        'running': _discovery.running,
        'cycles': _discovery.cycles,
        'registry_version': _registry.version,
        'report': report.to_dict() if report else None,
    })


# =============================================================================
# Printing
# =============================================================================

@app.route('/print', methods=['POST'])
@app.route('/api/print', methods=['POST'])
def print_job():
    """Print a command sequence or a template on a named printer."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    printer_name = data.get('printerName')
    if not printer_name:
        return jsonify({'success': False, 'error': 'printerName required'}), 400

    try:
        sequence = _sequence_from_request(data)
        options = RenderOptions.from_dict(data.get('renderOptions'))
    except PrintBridgeError as e:
        return _error(e)

    job = _router.dispatch(printer_name, sequence, options, source_ip=request.remote_addr)
    if job.success:
        return jsonify({
            'success': True,
            'message': job.message,
            'job': job.to_dict(),
        })
    return jsonify({
        'success': False,
        'error': job.message,
        'job': job.to_dict(),
    }), job.http_status


@app.route('/api/render', methods=['POST'])
def render_preview():
    """Render without printing (escpos output is base64 encoded)."""
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    output_format = str(data.get('format', 'html')).lower()
    renderers = {
        'escpos': EscposBufferRenderer,
        'payload': PayloadRenderer,
        'html': HtmlRenderer,
    }
    if output_format not in renderers:
        return jsonify({
            'success': False,
            'error': f'Invalid format. Valid: {list(renderers.keys())}'
        }), 400

    try:
        sequence = _sequence_from_request(data)
        options = RenderOptions.from_dict(data.get('renderOptions'))
        renderer = renderers[output_format](options)
        output = renderer.render(sequence)
    except PrintBridgeError as e:
        return _error(e)

    if output_format == 'escpos':
        output = base64.b64encode(output).decode('ascii')
    return jsonify({
        'success': True,
        'format': output_format,
        'data': output,
        'warnings': renderer.warnings,
    })


# =============================================================================
# Main
# =============================================================================

def main():
    """Run the service."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    print("=" * 60)
    print("  POS Print Bridge")
    print("=" * 60)
    print(f"  Version: {__version__}")
    print(f"  Port: {PORT}")
    print(f"  API key: {'required' if API_KEY else 'disabled'}")
    print("=" * 60)
    print("  API Endpoints:")
    print("    GET  /health                          - Health check")
    print("    GET  /api/printers                    - List printers")
    print("    GET  /api/printers/{id}               - Get printer")
    print("    POST /api/printers/{id}/test          - Test connection")
    print("    POST /api/printers/rediscover         - Run discovery")
    print("    GET  /api/discovery                   - Discovery report")
    print("    POST /api/print                       - Print job")
    print("    POST /api/render                      - Render preview")
    print("=" * 60)
    print("  Legacy Endpoints:")
    print("    POST /print                           - Print job")
    print("    GET  /printers                        - Printer array")
    print("=" * 60)

    _discovery.start(DISCOVERY_INTERVAL)
    if DISCOVERY_INTERVAL > 0:
        print(f"  Discovery every {DISCOVERY_INTERVAL:g}s")
    else:
        print("  Discovery at start-up and on demand")
    print("=" * 60)

    # The reloader would run a second discovery thread in the child process
    app.run(host=HOST, port=PORT, debug=DEBUG, use_reloader=False)


if __name__ == '__main__':
    main()
