from flink import sql
import os

with sql.connect(
    os.getenv("FLINK_GATEWAY_URL", "http://localhost:8083") + "?execution.runtime-mode=batch"
) as connection:

    with connection.cursor() as cursor:
        cursor.execute("SELECT * FROM (VALUES (1, 'a'), (2, 'b')) AS t(id, name)")
        result = cursor.fetchall()

        for row in result:
            print(row)
