from prometheus_client import Counter, Histogram


# Order Metrics
orders_placed_total = Counter("marketplace_orders_placed_total", "Total orders placed", ["status"])
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution",
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, float("inf")],
)
payment_captures_total = Counter(
    "marketplace_payment_captures_total", "Capture confirmations received", ["source", "outcome"]
)
payment_intent_duration = Histogram("marketplace_payment_intent_seconds", "Payment intent creation time")

# Fulfillment Metrics
fulfillment_transitions_total = Counter(
    "marketplace_fulfillment_transitions_total", "Fulfillment status changes", ["to_status", "outcome"]
)
deliveries_total = Counter("marketplace_deliveries_total", "Delivery events", ["event"])

# Review Metrics
reviews_total = Counter("marketplace_reviews_total", "Review events", ["event"])
