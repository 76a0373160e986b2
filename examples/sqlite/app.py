import asyncio

from aftercommit import AfterCommit, SQLiteConnection


def log_user(name: str):
    print(f"Welcome {name}")


async def run():
    app = AfterCommit()
    app.dispatcher.listen("app.events.user_created", log_user)

    async with SQLiteConnection(dispatcher=app.dispatcher) as conn:
        await conn.execute("CREATE TABLE users (name TEXT)")

        async with conn.transaction():
            for name in ("ada", "grace"):
                await conn.execute(
                    "INSERT INTO users (name) VALUES (?)", [name]
                )
                app.dispatcher.dispatch(
                    "app.events.user_created", name, connection=conn
                )
            print("Nobody has been welcomed yet")

        print(await conn.fetchall("SELECT name FROM users"))


asyncio.run(run())
