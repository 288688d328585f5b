from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from lark_aily.aily import Aily
from lark_aily.app_config import AppConfig, RuntimeEnv
from lark_aily.cache import SessionCache
from lark_aily.client import Client
from lark_aily.logging_config import setup_logging


@dataclass
class AppRuntime:
    client: Client
    aily: Aily
    app_id: str
    skill_id: str | None
    session_key: str | None
    log_descriptions: list[str]

    async def close(self) -> None:
        await self.client.aclose()


def bootstrap_runtime(app: AppConfig, env: RuntimeEnv) -> AppRuntime:
    session_key = (app.session_key or "cli") if app.continue_conversation else None
    log_descriptions = setup_logging(
        level=app.log_level,
        consumers=app.log_consumers,
        session=session_key or "-",
    )

    app_id = env.app_id or app.app_id
    if not app_id:
        raise ValueError("An aily app id is required (AppId in config.json or LARK_AILY_APP_ID).")
    if not env.access_token:
        logger.warning("LARK_ACCESS_TOKEN is not set; requests will be sent without Authorization.")

    client = Client(
        env.domain or app.domain,
        access_token=env.access_token,
        timeout=app.request_timeout_seconds,
    )
    aily = Aily(
        client,
        SessionCache(),
        poll_interval=app.poll_interval_seconds,
        max_poll_attempts=app.max_poll_attempts,
    )

    return AppRuntime(
        client=client,
        aily=aily,
        app_id=app_id,
        skill_id=app.skill_id,
        session_key=session_key,
        log_descriptions=log_descriptions,
    )
