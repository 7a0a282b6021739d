# Marks `geopicker.deps` as a package so routers can import
# `from ..deps.auth import require_api_key`.
