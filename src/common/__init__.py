"""Shared infrastructure: errors, logging, HTTP, retry, locks and cancellation."""
