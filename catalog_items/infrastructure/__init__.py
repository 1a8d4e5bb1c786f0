"""Infrastructure layer module.

Contains configuration, persistence, caching and event delivery.
"""
