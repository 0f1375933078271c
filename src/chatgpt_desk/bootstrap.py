from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from chatgpt_desk.app_config import AppConfig, RuntimeEnv
from chatgpt_desk.chat.coordinator import ChatStreamCoordinator
from chatgpt_desk.credentials import (
    CredentialProvider,
    DotenvCredentialProvider,
    KeyringCredentialProvider,
    resolve_api_key,
)
from chatgpt_desk.display import (
    ConsoleSink,
    MessageAppended,
    Spinner,
    StatusChanged,
    UpdateDispatcher,
    UpdateQueue,
)
from chatgpt_desk.images.cache import ImageCache
from chatgpt_desk.images.coordinator import ImageRequestCoordinator
from chatgpt_desk.logging_config import setup_logging
from chatgpt_desk.provider import ChatProvider, ImageProvider, create_chat_provider
from chatgpt_desk.providers.openai_provider import OpenAIProvider
from chatgpt_desk.store import MessageStore, MessageStoreError


@dataclass
class AppRuntime:
    config: AppConfig
    store: MessageStore
    updates: UpdateQueue
    dispatcher: UpdateDispatcher
    sink: ConsoleSink
    chat: ChatStreamCoordinator
    images: ImageRequestCoordinator
    image_cache: ImageCache
    log_descriptions: list[str]


def create_credential_provider(app: AppConfig) -> CredentialProvider:
    if app.credential_store == "dotenv":
        return DotenvCredentialProvider()
    if app.credential_store != "keyring":
        logger.warning(f"Unknown credential store {app.credential_store!r}, using keyring")
    return KeyringCredentialProvider()


def build_providers(
    app: AppConfig,
    env: RuntimeEnv,
    credentials: CredentialProvider,
    prompt: Callable[[str], str] | None = None,
) -> tuple[ChatProvider, ImageProvider]:
    prompt_kwargs = {"prompt": prompt} if prompt is not None else {}
    openai_key = resolve_api_key("openai", env, credentials, app.keyring_service, **prompt_kwargs)
    image_provider = OpenAIProvider(
        openai_key,
        timeout_seconds=app.request_timeout_seconds,
        max_attempts=app.max_request_attempts,
    )
    if app.provider_name == "openai":
        return image_provider, image_provider

    chat_key = resolve_api_key(app.provider_name, env, credentials, app.keyring_service, **prompt_kwargs)
    chat_provider = create_chat_provider(
        app.provider_name,
        chat_key,
        timeout_seconds=app.request_timeout_seconds,
        max_attempts=app.max_request_attempts,
        max_tokens=app.max_tokens,
    )
    return chat_provider, image_provider


def replay_history(store: MessageStore, updates: UpdateQueue) -> int:
    """Post every stored message to the display, oldest first."""
    try:
        messages = store.list_all()
    except MessageStoreError as ex:
        logger.error(f"Error loading chat history: {ex}")
        updates.post(StatusChanged("Error loading chat history"))
        return 0
    for message in messages:
        updates.post(MessageAppended(message.role.value, message.content))
    return len(messages)


async def bootstrap_runtime(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    credentials: CredentialProvider | None = None,
    chat_provider: ChatProvider | None = None,
    image_provider: ImageProvider | None = None,
    sink: ConsoleSink | None = None,
    prompt: Callable[[str], str] | None = None,
) -> AppRuntime:
    """Wire up the app. Raises MessageStoreError when the store cannot be opened."""
    try:
        data_dir = app.data_dir
    except OSError as ex:
        raise MessageStoreError(f"Cannot create data directory: {ex}") from ex
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers, log_dir=data_dir)

    db_path = app.message_db_path
    store = MessageStore(str(db_path))
    logger.info(f"Message store opened: {db_path}")

    if chat_provider is None or image_provider is None:
        try:
            built_chat, built_image = build_providers(
                app, env, credentials or create_credential_provider(app), prompt
            )
        except BaseException:
            store.close()
            raise
        chat_provider = chat_provider or built_chat
        image_provider = image_provider or built_image

    updates = UpdateQueue()
    sink = sink or ConsoleSink()
    dispatcher = UpdateDispatcher(updates, sink, spinner=Spinner(updates))
    dispatcher.start()

    image_cache = ImageCache(app.image_cache_path)
    chat = ChatStreamCoordinator(
        store,
        chat_provider,
        updates,
        model=app.model,
        temperature=app.temperature,
    )
    images = ImageRequestCoordinator(
        image_provider,
        image_cache,
        updates,
        model=app.image_model,
        size=app.image_size,
    )

    replayed = replay_history(store, updates)
    logger.info(f"Replayed {replayed} stored messages")

    return AppRuntime(
        config=app,
        store=store,
        updates=updates,
        dispatcher=dispatcher,
        sink=sink,
        chat=chat,
        images=images,
        image_cache=image_cache,
        log_descriptions=log_descriptions,
    )


async def shutdown_runtime(runtime: AppRuntime) -> None:
    runtime.chat.cancel()
    runtime.images.cancel()
    await runtime.chat.wait()
    await runtime.images.wait()
    await runtime.dispatcher.stop()
    runtime.sink.close()
    runtime.store.close()
    runtime.image_cache.remove()
    logger.info("Shutdown complete")
