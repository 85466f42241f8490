"""
POS Print Bridge
================

Local HTTP bridge between web point-of-sale front-ends and receipt printers.

Supports:
- OS print queues (Windows spooler, CUPS), virtual and physical
- Raw USB thermal printers (ESC/POS via pyusb)
- Network printers announced over mDNS (raw TCP 9100)

Usage:
    python -m pos_print_bridge

API Endpoints:
    GET  /api/printers                - List discovered printers
    GET  /api/printers/{id}           - Printer details
    POST /api/printers/{id}/test      - Probe one printer
    POST /api/printers/rediscover     - Run discovery now
    GET  /api/discovery               - Last discovery report
    POST /api/print                   - Print a command sequence or template
    POST /api/render                  - Preview as ESC/POS, payload or HTML
"""

__version__ = '1.0.0'
__author__ = 'POS Print Bridge contributors'
