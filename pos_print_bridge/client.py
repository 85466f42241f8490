"""
POS Print Bridge Client
=======================

Python SDK for talking to a running POS Print Bridge.

Usage:
    from pos_print_bridge.client import PrintClient

    client = PrintClient('http://localhost:3030', api_key='your-key')

    # List printers
    printers = client.list_printers()

    # Print a command sequence
    result = client.print_commands('Front Desk', [
        {'type': 'println', 'content': 'Hello'},
        {'type': 'cut'},
    ])

    # Print a template
    client.print_template('Front Desk', 'TEST')
"""

import requests
from typing import Dict, Any, Optional, List


class PrintClient:
    """Client for POS Print Bridge."""

    def __init__(self, base_url: str = 'http://localhost:3030', api_key: str = None,
                 timeout: float = 30):
        """
        Initialize client.

        Args:
            base_url: Base URL of the bridge
            api_key: API key for authentication
            timeout: Request timeout in seconds (print requests get double)
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        """Get request headers."""
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    def _request(self, method: str, endpoint: str, data: Dict = None,
                 timeout: float = None) -> Any:
        """Make API request."""
        url = f'{self.base_url}{endpoint}'
        timeout = timeout or self.timeout

        try:
            if method == 'GET':
                response = requests.get(url, headers=self._headers(), timeout=timeout)
            elif method == 'POST':
                response = requests.post(url, json=data or {}, headers=self._headers(),
                                         timeout=timeout)
            else:
                raise ValueError(f'Unknown method: {method}')

            return response.json()

        except requests.exceptions.Timeout:
            return {'success': False, 'error': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'success': False, 'error': f'Cannot connect to {self.base_url}'}
        except requests.exceptions.RequestException as e:
            return {'success': False, 'error': str(e)}
        except ValueError as e:
            # Non-JSON body
            return {'success': False, 'error': f'Invalid response: {e}'}

    # =========================================================================
    # Health
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """Check service health."""
        return self._request('GET', '/health')

    def is_online(self) -> bool:
        """Check if service is online."""
        result = self.health()
        return result.get('status') == 'online'

    # =========================================================================
    # Printers
    # =========================================================================

    def list_printers(self) -> List[Dict[str, Any]]:
        """List discovered printers."""
        result = self._request('GET', '/api/printers')
        return result.get('printers', [])

    def get_printer(self, printer_id: str) -> Optional[Dict[str, Any]]:
        """Get printer by ID."""
        result = self._request('GET', f'/api/printers/{printer_id}')
        return result.get('printer') if result.get('success') else None

    def rediscover(self) -> Dict[str, Any]:
        """Run a discovery cycle on the bridge and wait for it."""
        return self._request('POST', '/api/printers/rediscover', timeout=self.timeout * 2)

    def test_printer(self, printer_id: str) -> Dict[str, Any]:
        """Probe one printer."""
        return self._request('POST', f'/api/printers/{printer_id}/test')

    def discovery_report(self) -> Dict[str, Any]:
        """Report of the last discovery cycle."""
        return self._request('GET', '/api/discovery')

    # =========================================================================
    # Printing
    # =========================================================================

    def print_commands(self, printer_name: str, commands: List[Dict[str, Any]],
                       **render_options) -> Dict[str, Any]:
        """
        Print a command sequence.

        Args:
            printer_name: Printer display name, queue name or id
            commands: Wire command objects
            **render_options: renderOptions keys (lineWidth, autoCut, ...)
        """
        data = {
            'printerName': printer_name,
            'commandSequence': commands,
            'renderOptions': render_options,
        }
        return self._request('POST', '/api/print', data, timeout=self.timeout * 2)

    def print_template(self, printer_name: str, template_type: str,
                       template_data: Dict[str, Any] = None, **render_options) -> Dict[str, Any]:
        """Print a registered template."""
        data = {
            'printerName': printer_name,
            'templateType': template_type,
            'templateData': template_data or {},
            'renderOptions': render_options,
        }
        return self._request('POST', '/api/print', data, timeout=self.timeout * 2)

    def render(self, commands: List[Dict[str, Any]], output_format: str = 'html',
               **render_options) -> Dict[str, Any]:
        """Render a command sequence without printing (escpos comes back base64)."""
        data = {
            'format': output_format,
            'commandSequence': commands,
            'renderOptions': render_options,
        }
        return self._request('POST', '/api/render', data)
