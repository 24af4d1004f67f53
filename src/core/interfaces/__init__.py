"""Core interfaces/abstractions.

Why:
- Defines the contracts (Protocol) that concrete adapters implement.
- Inverts dependencies: the engine depends on abstractions, not on httpx or
  on a particular storage backend.
"""
