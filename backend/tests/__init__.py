"""
BizChat backend test suite.

Markers: unit (no I/O), api (through the ASGI app), asyncio.
"""
