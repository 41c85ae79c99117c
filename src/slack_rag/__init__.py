"""Slack RAG: index Slack messages into turbopuffer and answer questions over them."""

__version__ = "1.0.0"
