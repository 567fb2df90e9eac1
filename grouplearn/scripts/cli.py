"""
A simple CLI for running the request service.
"""

import os
import sys

import uvicorn


def run_server(**kwargs):
    for k, v in kwargs.items():
        os.environ[k] = v

    uvicorn.run("grouplearn.api.app:app", host="0.0.0.0")


def main():
    try:
        command = sys.argv[1]
        mode = sys.argv[2] if command == "run" else None
    except IndexError:
        print(
            "Only supported commands are grouplearn run dev, grouplearn run prod, or grouplearn setup"
        )
        exit(1)

    if command == "run" and mode == "dev":
        from testcontainers.postgres import PostgresContainer

        with PostgresContainer() as container:
            print(
                f"Container details: username={container.username}, password={container.password}, port={container.get_exposed_port(container.port)}"
            )

            run_server(
                GROUPLEARN_DATABASE_TYPE="postgres",
                GROUPLEARN_DATABASE_USER=container.username,
                GROUPLEARN_DATABASE_PASSWORD=container.password,
                GROUPLEARN_DATABASE_PORT=str(container.get_exposed_port(container.port)),
                GROUPLEARN_DATABASE_HOST="localhost",
                GROUPLEARN_DATABASE_DB=container.dbname,
                GROUPLEARN_DATABASE_ECHO="False",
            )
    elif command == "run" and mode == "prod":
        run_server()
    elif command == "setup":
        from grouplearn.config.settings import Settings

        Settings().sync_manager().create_all()

        print("Setup complete, tables for group requests have been created")
        exit(0)
    else:
        print(f"Unknown command: {' '.join(sys.argv[1:])}")
        exit(1)
