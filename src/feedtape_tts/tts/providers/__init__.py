"""
Synthesis provider implementations.

    - polly_provider.py: Amazon Polly (boto3)
    - openai_provider.py: OpenAI audio.speech (openai SDK)

Import the concrete modules directly or go through
``feedtape_tts.tts.provider.create_provider``; this package does not
import either SDK on its own.
"""
