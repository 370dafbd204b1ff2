"""Client half of the stack.

- ``cache``: session query cache, dehydration and hydration
- ``api``: HTTP invoker for plugin endpoints (httpx)
- ``query`` / ``mutation``: three-state reads and optimistic writes
- ``routes`` / ``stack``: route descriptors and their composition
- ``render``: the render boundary (loading, error, not found)
"""
