"""Test suite for the CFP contract harness.

Tests are hermetic: every HTTP call goes through httpx.MockTransport into an
in-memory fake of the CFP server (see conftest.py). The live contract test
under tests/e2e only runs when CFP_E2E=1 is set.
"""
