"""Liveness server that tallies requests per client address."""
