"""Test helpers: scripted transports, fake adapters and an in-memory store."""
