"""
Synthesis Pipeline Components.

    - language.py: Supported languages, voice table and detection
    - chunker.py: Sentence-aware splitting into provider-sized batches
    - provider.py: Provider base class and factory
    - providers/: Polly and OpenAI implementations
    - cache.py: In-memory LRU result cache with sliding TTL
"""
