"""
Data access layer: HTTP request execution, query strings, response cache,
cancellation and token storage.
"""
