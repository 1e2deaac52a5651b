"""
Routers module - API endpoint handlers organized by feature.

- insights: device insights, battery advice, performance tips, free-text
  queries, data-source collection, status and AI usage stats
"""
