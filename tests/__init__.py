"""Test suite for PtScraper.

Hermetic pytest tests, one module per ptscraper module.

Testing Philosophy:
    - httpx.MockTransport for network isolation, pytest-mock for spies
    - Focus coverage on extraction fallbacks, normalizers and auth heuristics
    - No test touches the network or a real tracker
"""
