"""
Core Infrastructure for feedtape-tts.

    - config.py: Configuration loading and validation
    - errors.py: Error codes and the TTSError hierarchy
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics collection
"""
