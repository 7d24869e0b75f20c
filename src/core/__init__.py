"""Core domain package for tabby.

Core contains rule evaluation, quip selection, deduplication, and throttling
logic without any browser, Telegram, or storage-specific code, keeping the
humor engine portable.
"""
