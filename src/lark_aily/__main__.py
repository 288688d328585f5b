import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from lark_aily.aily import ExecStatus
from lark_aily.app_config import load_json_config, parse_app_config, resolve_runtime_env
from lark_aily.bootstrap import AppRuntime, bootstrap_runtime


def format_reply(message: dict) -> str:
    return message.get("plain_text") or message.get("content") or ""


async def handle_line(runtime: AppRuntime, text: str) -> str:
    result = await runtime.aily.completions.create(
        message=text,
        app_id=runtime.app_id,
        skill_id=runtime.skill_id,
        session_key=runtime.session_key,
    )
    if result.code is ExecStatus.SUCCESS and result.message is not None:
        return format_reply(result.message)
    return f"[{result.code.name}]"


async def main() -> None:
    load_dotenv()

    try:
        app = parse_app_config(load_json_config())
        runtime = bootstrap_runtime(app, resolve_runtime_env())
    except ValueError as ex:
        logger.error(str(ex))
        sys.exit(1)

    print(f"lark-aily (app: {runtime.app_id}, type 'exit' to quit)")
    print(f"Domain: {runtime.client.domain}")
    if runtime.session_key:
        print(f"Session key: {runtime.session_key}")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    try:
        while True:
            try:
                user_input = input("you> ")
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()

            if trimmed in ("exit", "quit"):
                break

            if not trimmed:
                continue

            print(f"aily> {await handle_line(runtime, trimmed)}\n")
    finally:
        await runtime.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
