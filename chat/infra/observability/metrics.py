"""
Prometheus Metrics

Counters for the conversation synchronizer, exposed together with the
marketplace metrics.
"""

from prometheus_client import Counter

conversations_total = Counter("chat_conversations_total", "Conversation lookups", ["outcome"])
"""
Labels: outcome (created, existing)

Example:
    conversations_total.labels(outcome='created').inc()
"""

messages_posted_total = Counter("chat_messages_posted_total", "Messages posted", ["author_role"])
"""
Labels: author_role (seller, buyer)
"""
