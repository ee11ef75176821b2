"""
Providers: LLM backends and session storage.
"""
