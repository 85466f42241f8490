"""Shared fixtures for POS Print Bridge tests."""

import pytest

from pos_print_bridge.discovery import PrinterRegistry
from pos_print_bridge.models import (
    CommandSequence,
    DiscoverySource,
    PrinterRecord,
    RawCandidate,
    TransportKind,
)


@pytest.fixture
def sequence():
    """Build a CommandSequence from wire dicts."""
    def build(*commands):
        return CommandSequence.from_list(list(commands))
    return build


@pytest.fixture
def os_candidate():
    def build(name='Front Desk', virtual=False, **kwargs):
        return RawCandidate(
            source=DiscoverySource.OS_QUEUE,
            transport_kind=TransportKind.VIRTUAL_OS if virtual else TransportKind.OS_QUEUE_PHYSICAL,
            name=name,
            os_queue_name=name,
            is_virtual=virtual,
            **kwargs,
        )
    return build


@pytest.fixture
def usb_candidate():
    def build(vendor_id=0x04B8, product_id=0x0E15, **kwargs):
        kwargs.setdefault('name', f'EPSON TM-T20 ({vendor_id:04X}:{product_id:04X})')
        return RawCandidate(
            source=DiscoverySource.USB,
            transport_kind=TransportKind.RAW_USB,
            vendor_id=vendor_id,
            product_id=product_id,
            **kwargs,
        )
    return build


@pytest.fixture
def mdns_candidate():
    def build(host='frontdesk.local', ip='192.168.1.50', port=9100,
              service_name='Kitchen Printer', service_type='PDL Stream', priority=0, **kwargs):
        return RawCandidate(
            source=DiscoverySource.MDNS,
            transport_kind=TransportKind.MDNS_LAN,
            name=f'{service_name} ({service_type}) @ {ip or host}:{port}',
            host=host,
            ip=ip,
            port=port,
            service_name=service_name,
            service_type=service_type,
            service_priority=priority,
            **kwargs,
        )
    return build


@pytest.fixture
def virtual_record():
    return PrinterRecord(
        id='os-microsoft_print_to_pdf',
        display_name='Microsoft Print to PDF',
        transport_kind=TransportKind.VIRTUAL_OS,
        os_queue_name='Microsoft Print to PDF',
        is_virtual=True,
    )


@pytest.fixture
def usb_record():
    return PrinterRecord(
        id='usb-04b8-0e15',
        display_name='EPSON TM-T20 (04B8:0E15)',
        transport_kind=TransportKind.RAW_USB,
        vendor_id=0x04B8,
        product_id=0x0E15,
    )


@pytest.fixture
def lan_record():
    return PrinterRecord(
        id='mdns-kitchen.local-9100',
        display_name='Kitchen (PDL Stream) @ 192.168.1.60:9100',
        transport_kind=TransportKind.MDNS_LAN,
        host='kitchen.local',
        ip='192.168.1.60',
        port=9100,
    )


@pytest.fixture
def registry(virtual_record, usb_record, lan_record):
    return PrinterRegistry({r.id: r for r in (virtual_record, usb_record, lan_record)})
