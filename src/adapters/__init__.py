"""Adapters connecting the core humor engine to files, Telegram, and SQLite."""
