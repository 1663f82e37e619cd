from flink import sql
import os, threading, time

"""
The current operation of a cursor may be cancelled by calling its `.cancel()` method as shown in the example below.
"""

with sql.connect(gateway_url=os.getenv("FLINK_GATEWAY_URL", "http://localhost:8083"),
                 properties={"execution.runtime-mode": "batch"}) as connection:

  with connection.cursor() as cursor:
    cursor.execute("CREATE TEMPORARY TABLE numbers (v BIGINT) "
                   "WITH ('connector' = 'datagen', 'number-of-rows' = '1000000000')")

    def execute_really_long_query():
        try:
            cursor.execute("SELECT COUNT(DISTINCT v) FROM numbers")
        except sql.exc.ContextCanceledError:
          print("It looks like this query was cancelled.")

    exec_thread = threading.Thread(target=execute_really_long_query)

    print("\n Beginning to execute long query")
    exec_thread.start()

    # Make sure the query has started before cancelling
    print("\n Waiting 15 seconds before canceling", end="", flush=True)

    seconds_waited = 0
    while seconds_waited < 15:
      seconds_waited += 1
      print(".", end="", flush=True)
      time.sleep(1)

    print("\n Cancelling the cursor's operation. This can take a few seconds.")
    cursor.cancel()

    print("\n Now checking the cursor status:")
    exec_thread.join(5)

    assert not exec_thread.is_alive()
    print("\n The previous command was successfully canceled")

    print("\n Now reusing the cursor to run a separate query.")

    # We can still execute a new command on the cursor
    cursor.execute("SELECT * FROM (VALUES (1), (2), (3)) AS t(v)")

    print("\n Execution was successful. Results appear below:")

    print(cursor.fetchall())
