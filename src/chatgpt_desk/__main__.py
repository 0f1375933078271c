import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from chatgpt_desk.app_config import load_json_config, parse_app_config, resolve_runtime_env
from chatgpt_desk.bootstrap import bootstrap_runtime, shutdown_runtime
from chatgpt_desk.credentials import CredentialError
from chatgpt_desk.shell import ConsoleShell
from chatgpt_desk.store import MessageStoreError


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    env = resolve_runtime_env()

    try:
        runtime = await bootstrap_runtime(app, env)
    except MessageStoreError as ex:
        logger.error(f"Database Error: {ex}")
        sys.exit(1)
    except CredentialError as ex:
        logger.error(str(ex))
        sys.exit(1)

    print("chatgpt-desk (type 'exit' to quit, '/help' for commands)")
    print(f"Chat: {app.provider_name} / {runtime.chat.model} (temperature {runtime.chat.temperature:.1f})")
    print(f"Images: {app.image_model} ({app.image_size})")
    print(f"History: {runtime.store.count()} messages in {app.message_db_path}")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    try:
        await ConsoleShell(runtime).run()
    finally:
        await shutdown_runtime(runtime)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
