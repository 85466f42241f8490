"""
Dispatch Router
===============

Routes a print request to the renderer and transport matching the target
printer's transport kind:

    VirtualOS        HtmlRenderer           VirtualPrintTransport
    OsQueuePhysical  LiveTransportRenderer  OsQueueTransport
    RawUsb           EscposBufferRenderer   UsbTransport
    MdnsLan          LiveTransportRenderer  TcpTransport

Every request yields exactly one PrintJob; ``dispatch()`` does not raise.
"""

import logging
from typing import Callable, Optional

from .discovery.registry import PrinterRegistry
from .errors import ConfigError
from .models import CommandSequence, PrintJob, PrinterRecord, RenderOptions, TransportKind
from .renderers import EscposBufferRenderer, HtmlRenderer, LiveTransportRenderer
from .transports import BaseTransport, get_transport

logger = logging.getLogger(__name__)


class DispatchRouter:
    """Looks printers up in the registry and runs print jobs against them."""

    def __init__(self, registry: PrinterRegistry,
                 transport_lookup: Callable[[TransportKind], type] = get_transport,
                 surface_factory: Optional[Callable] = None):
        self.registry = registry
        self.transport_lookup = transport_lookup
        self.surface_factory = surface_factory

    def _transport(self, record: PrinterRecord, options: RenderOptions) -> BaseTransport:
        transport_cls = self.transport_lookup(record.transport_kind)
        if transport_cls is None:
            raise ConfigError(f'No transport for {record.transport_kind.value}')
        transport_cls.validate(record)
        if record.transport_kind is TransportKind.VIRTUAL_OS and self.surface_factory:
            return transport_cls(record, options, surface_factory=self.surface_factory)
        return transport_cls(record, options)

    def dispatch(self, printer_name: str, sequence: CommandSequence,
                 options: Optional[RenderOptions] = None,
                 source_ip: Optional[str] = None, source: str = 'api') -> PrintJob:
        """
        Print a command sequence on a named printer.

        Args:
            printer_name: Display name, OS queue name or record id
            sequence: Parsed command sequence
            options: Render options
            source_ip: Requesting client address (for logs)
            source: 'api' or 'client'

        Returns:
            The finished PrintJob, successful or failed
        """
        options = options or RenderOptions()
        job = PrintJob(printer_name=printer_name or '', source=source, source_ip=source_ip)
        job.start()

        try:
            record = self.registry.find(printer_name)
            job.printer_id = record.id
            job.transport_kind = record.transport_kind.value

            kind = record.transport_kind
            if kind is TransportKind.VIRTUAL_OS:
                self._print_virtual(job, record, sequence, options)
            elif kind is TransportKind.RAW_USB:
                self._print_buffered(job, record, sequence, options)
            elif kind in (TransportKind.OS_QUEUE_PHYSICAL, TransportKind.MDNS_LAN):
                self._print_live(job, record, sequence, options)
            else:
                raise ConfigError(f'Unsupported transport kind: {kind}')

            job.advance('report')
            job.complete(f'Printed on {record.display_name}')
            logger.info('Job %s printed on %s (%d bytes)', job.id, record.display_name, job.bytes_sent)
        except Exception as e:
            job.fail(e)
            logger.error('Job %s for %r failed at %s: %s', job.id, printer_name, job.stage, job.message)

        return job

    # =========================================================================
    # Routes
    # =========================================================================

    def _print_virtual(self, job: PrintJob, record: PrinterRecord,
                       sequence: CommandSequence, options: RenderOptions):
        job.advance('render')
        renderer = HtmlRenderer(options)
        job.renderer = renderer.name
        document = renderer.render(sequence).encode('utf-8')
        job.warnings.extend(renderer.warnings)

        transport = self._transport(record, options)
        job.advance('acquire')
        transport.open()
        try:
            job.advance('transmit')
            transport.write(document)
            transport.commit()
            job.bytes_sent = transport.bytes_written
        finally:
            job.advance('release')
            transport.close()

    def _print_buffered(self, job: PrintJob, record: PrinterRecord,
                        sequence: CommandSequence, options: RenderOptions):
        job.advance('render')
        renderer = EscposBufferRenderer(options)
        job.renderer = renderer.name
        data = renderer.render(sequence)
        job.instructions = list(renderer.instructions)

        transport = self._transport(record, options)
        job.advance('acquire')
        transport.open()
        try:
            job.advance('transmit')
            for _ in range(options.copies):
                transport.write(data)
            transport.commit()
            job.bytes_sent = transport.bytes_written
        finally:
            job.advance('release')
            transport.close()

    def _print_live(self, job: PrintJob, record: PrinterRecord,
                    sequence: CommandSequence, options: RenderOptions):
        # Rendering and transmission are one pass over the open transport
        renderer = LiveTransportRenderer(options)
        job.renderer = renderer.name

        transport = self._transport(record, options)
        job.advance('acquire')
        transport.open()
        try:
            job.advance('render')
            copies = 1 if record.transport_kind is TransportKind.OS_QUEUE_PHYSICAL else options.copies
            for _ in range(copies):
                renderer.render(sequence, transport)
            job.instructions = list(renderer.instructions)
            job.advance('transmit')
            transport.commit()
            job.bytes_sent = transport.bytes_written
        finally:
            job.advance('release')
            transport.close()
