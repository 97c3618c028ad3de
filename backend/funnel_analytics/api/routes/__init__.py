from funnel_analytics.api.routes import analytics, forecast

__all__ = [
    "analytics",
    "forecast",
]
