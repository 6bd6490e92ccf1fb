"""CFP contract harness core package.

Black-box conformance suite for the CFP personal-finance HTTP service:
- probe: one HTTP request plus its declared status and JSON shape
- bootstrap: resilient sign-up/sign-in producing the run's session
- tracker: per-group registry of identifiers returned by create calls
- scenario / groups: ordered scenario groups and their steps
- runner: sequential orchestration, with teardown guaranteed
- teardown: best-effort sign-out
- reporter: human-readable run summary
- logger: structured logging configuration
- exceptions: custom exception hierarchy
"""

__version__ = "1.0.0"
