"""Allow ``python -m api.src`` to start the server."""

from api.src.server import main

main()
