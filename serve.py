import asyncio
import logging
import os

from http_server.request import Request
from http_server.response import Response, error, response
from http_server.server import HTTPServer
from minirel import Database

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger()


def load_database(snapshot_path: str | None) -> Database:
    """Fresh database, or one restored from a snapshot file when a path is set."""
    if not snapshot_path:
        return Database()

    with open(snapshot_path, encoding="utf-8") as f:
        database = Database.deserialize(f.read())
    logger.info(f"Loaded snapshot {snapshot_path}: {len(database.get_tables())} table(s)")
    return database


async def main():
    host = os.environ.get("MINIREL_HOST", "0.0.0.0")
    port = int(os.environ.get("MINIREL_PORT", "8080"))

    server = HTTPServer(host=host, port=port)
    database = load_database(os.environ.get("MINIREL_SNAPSHOT"))
    await register_routes(server, database)
    logger.debug(f"Registered routes: {sorted(server.routes)}")
    await server.start()


async def register_routes(server: HTTPServer, database: Database):

    @server.route('/query', ['POST'])
    async def query(request: Request) -> Response:
        if request.json_error is not None:
            return error(400, f"Request body is not valid JSON: {request.json_error}")

        sql = request.get("sql")
        if not isinstance(sql, str) or not sql.strip():
            return error(400, "Missing 'sql' in request body")

        # Statements take table locks, keep them off the event loop
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, database.execute, sql)
        return response(status_code=200 if result.success else 400).json(result.to_dict())

    @server.route('/tables', ['GET'])
    async def tables(request: Request) -> Response:
        return response(status_code=200).json({"tables": database.get_tables()})

    @server.route('/tables/info', ['GET'])
    async def table_info(request: Request) -> Response:
        name = request.get("name")
        if not name:
            return error(400, "Missing 'name' parameter")

        info = database.get_table_info(name)
        if info is None:
            return error(404, f'Table "{name}" does not exist')
        return response(status_code=200).json(info)

    @server.route('/snapshot', ['GET'])
    async def snapshot(request: Request) -> Response:
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, database.to_snapshot)
        return response(status_code=200).json(data)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
