"""Example: send standard library logging to a document store.

Run with:
    python examples/logging_example.py [connection-string]

The default connection string writes to ``logs.db`` in the current
directory. Pass ``localhost/app`` (or any MongoDB URI) to write to a
MongoDB collection instead.
"""

import logging
import sys

from docsink import DocSinkHandler, create_sink

connection_string = sys.argv[1] if len(sys.argv) > 1 else "sqlite://logs.db"

sink = create_sink(
    {
        "connectionString": connection_string,
        "collectionName": "log",
        "write": "normal",
        "writeInterval": 0.5,
        "layout": {"type": "basic"},
        "metaData": {"service": "example", "$region": "eu.west"},
    }
)

handler = DocSinkHandler(sink)
root = logging.getLogger()
root.addHandler(handler)
root.setLevel(logging.INFO)

# docsink reports its own connection and write errors on stderr
logging.getLogger("docsink").addHandler(logging.StreamHandler())

logger = logging.getLogger("example")
logger.info("user %s logged in", "ann")
logger.warning({"event": "quota", "used.percent": 93})
try:
    1 / 0
except ZeroDivisionError as e:
    logger.error(e)

handler.close()
