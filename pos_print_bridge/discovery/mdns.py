"""
mDNS Discovery
==============

Browses Bonjour/mDNS printer services with zeroconf for a fixed window.
"""

import ipaddress
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

from ..config import MDNS_DISCOVERY_WINDOW, MDNS_INFO_TIMEOUT_MS, MDNS_SERVICE_TYPES
from ..models import DiscoverySource, RawCandidate, TransportKind

logger = logging.getLogger(__name__)


def normalize_txt(raw: Any) -> Dict[str, str]:
    """Decode a TXT record mapping (bytes keys and values) to strings."""
    if not isinstance(raw, dict):
        return {}
    txt = {}
    for key, value in raw.items():
        key = key.decode('utf-8', errors='ignore') if isinstance(key, bytes) else str(key)
        if value is None:
            value = ''
        elif isinstance(value, bytes):
            value = value.decode('utf-8', errors='ignore')
        txt[key.strip()] = str(value).strip()
    return txt


def pick_address(addresses: List[str]) -> Optional[str]:
    """Prefer a routable IPv4 address, then any routable one."""
    usable = []
    for address in addresses:
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            continue
        if ip.is_loopback or ip.is_link_local:
            continue
        usable.append(ip)
    for ip in usable:
        if ip.version == 4:
            return str(ip)
    return str(usable[0]) if usable else None


def instance_name(name: str, service_type: str) -> str:
    """'Front Desk._pdl-datastream._tcp.local.' -> 'Front Desk'"""
    if name.endswith('.' + service_type):
        return name[:-len(service_type) - 1]
    return name.split('._', 1)[0]


def accepts_port(service_type: str, name: str, port: int, allowed=None) -> bool:
    """Apply the per-service-type port filter ('allowed' None accepts any port)."""
    if not allowed or port in allowed:
        return True
    # Raw-socket services on odd ports are kept when they call themselves printers
    return service_type.startswith('_pdl-datastream') and 'printer' in name.lower()


class PrinterServiceListener(ServiceListener):
    """Collects resolved printer services until the session stops."""

    def __init__(self, session: 'MdnsBrowseSession'):
        self._session = session

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._session.record_service(zc, type_, name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._session.record_service(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._session.forget_service(type_, name)


class MdnsBrowseSession:
    """
    One browse window.

    ``stop()`` may be reached from the window timer and from a caller at
    the same time; only the first call cancels the browsers and closes the
    zeroconf instance. Services reported after that are ignored.
    """

    def __init__(self, window: float = MDNS_DISCOVERY_WINDOW,
                 service_types: Optional[Dict[str, Dict[str, Any]]] = None,
                 zeroconf_factory: Callable[[], Zeroconf] = Zeroconf,
                 browser_factory: Callable[..., Any] = ServiceBrowser):
        self.window = window
        self.service_types = MDNS_SERVICE_TYPES if service_types is None else service_types
        self.zeroconf_factory = zeroconf_factory
        self.browser_factory = browser_factory

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._stopped = False
        self._zeroconf = None
        self._browsers: List[Any] = []
        self._services: Dict[str, RawCandidate] = {}

    @property
    def stopped(self) -> bool:
        return self._stopped

    def run(self) -> List[RawCandidate]:
        """Browse for ``window`` seconds (or until stopped) and return what was found."""
        self._zeroconf = self.zeroconf_factory()
        listener = PrinterServiceListener(self)
        try:
            for service_type in self.service_types:
                self._browsers.append(self.browser_factory(self._zeroconf, service_type, listener))
            self._done.wait(self.window)
        finally:
            self.stop()
        return self.snapshot()

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            browsers, self._browsers = self._browsers, []
            zc, self._zeroconf = self._zeroconf, None
        self._done.set()

        for browser in browsers:
            try:
                browser.cancel()
            except Exception as e:
                logger.debug('Cancelling mDNS browser failed: %s', e)
        if zc is not None:
            try:
                zc.close()
            except Exception as e:
                logger.debug('Closing zeroconf failed: %s', e)

    def snapshot(self) -> List[RawCandidate]:
        with self._lock:
            return [self._services[key] for key in sorted(self._services)]

    def record_service(self, zc: Zeroconf, service_type: str, name: str) -> None:
        if self._stopped:
            return
        info = zc.get_service_info(service_type, name, timeout=MDNS_INFO_TIMEOUT_MS)
        if not info or not info.port:
            return

        settings = self.service_types.get(service_type, {})
        instance = instance_name(name, service_type)
        if not accepts_port(service_type, instance, info.port, settings.get('ports')):
            logger.debug('Ignoring %s on port %s', name, info.port)
            return

        ip = pick_address(info.parsed_addresses())
        host = (info.server or '').rstrip('.').lower() or None
        if not (ip or host):
            return

        label = settings.get('label', service_type)
        candidate = RawCandidate(
            source=DiscoverySource.MDNS,
            transport_kind=TransportKind.MDNS_LAN,
            name=f'{instance} ({label}) @ {ip or host}:{info.port}',
            host=host,
            ip=ip,
            port=info.port,
            service_name=instance,
            service_type=label,
            service_priority=settings.get('priority', 9),
            txt=normalize_txt(info.properties),
        )
        with self._lock:
            if not self._stopped:
                self._services[f'{service_type}|{name}'] = candidate

    def forget_service(self, service_type: str, name: str) -> None:
        with self._lock:
            self._services.pop(f'{service_type}|{name}', None)


def browse_mdns_printers(window: float = MDNS_DISCOVERY_WINDOW) -> List[RawCandidate]:
    """Run one mDNS browse window."""
    candidates = MdnsBrowseSession(window=window).run()
    logger.info('mDNS discovery found %d service(s)', len(candidates))
    return candidates
