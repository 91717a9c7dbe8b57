"""
Utility Modules for feedtape-tts.

    - text.py: Article text normalization (markup, URLs, whitespace)
    - timeit.py: Stage timing
"""
