"""Live contract tests against a real CFP deployment (opt-in via CFP_E2E=1)."""
