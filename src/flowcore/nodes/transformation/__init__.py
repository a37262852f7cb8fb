"""Built-in transformation nodes: data-filter and field-mapper.

Both are pure: no I/O, no state between calls.
"""
