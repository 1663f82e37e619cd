from flink import sql
from flink.sql.context import ExecutionContext
import os
import logging


logger = logging.getLogger("flink.sql")
logger.setLevel(logging.DEBUG)
fh = logging.FileHandler("pysqllogs.log")
fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(process)d %(thread)d %(message)s"))
fh.setLevel(logging.DEBUG)
logger.addHandler(fh)

with sql.connect(
    gateway_url=os.getenv("FLINK_GATEWAY_URL", "http://localhost:8083"),
    properties={"execution.runtime-mode": "batch"},
    poll_interval_max=1.0,
) as connection:

    with connection.cursor(arraysize=1000) as cursor:
        print("executing query: SELECT * FROM (VALUES (1), (2), (3)) AS t(v)")
        cursor.execute(
            "SELECT * FROM (VALUES (1), (2), (3)) AS t(v)",
            context=ExecutionContext.with_timeout(60),
        )
        try:
            while True:
                row = cursor.fetchone()
                if row is None:
                    break
                print(f"row: {row}")
        except sql.exc.DecodeError as e:
            print(f"error: {e}")
