import asyncio
import logging
from contextlib import asynccontextmanager

from dishka import make_async_container
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from messenger.config import Config, load_config
from messenger.core.exceptions import MessengerError
from messenger.providers.app import AdaptersProvider, GatewaysProvider, ServicesProvider
from messenger.services import AuthAPI, ContactAPI, ChatAPI, MessageAPI

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.dishka_container.close()

async def messenger_error_handler(request: Request, exc: MessengerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

async def create_app(config: Config | None = None) -> FastAPI:
    container = make_async_container(
        AdaptersProvider(config),
        GatewaysProvider(),
        ServicesProvider(),
    )

    app = FastAPI(title="Messenger", lifespan=lifespan)
    setup_dishka(container, app)
    app.add_exception_handler(MessengerError, messenger_error_handler)

    auth_api = await container.get(AuthAPI)
    contact_api = await container.get(ContactAPI)
    chat_api = await container.get(ChatAPI)
    message_api = await container.get(MessageAPI)

    app.include_router(auth_api.get_router())
    app.include_router(contact_api.get_router())
    app.include_router(chat_api.get_router())
    app.include_router(message_api.get_router())

    return app

def main():
    config = load_config(".env")
    logging.basicConfig(
        level=config.log.level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )
    app = asyncio.run(create_app(config))
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=config.log.level.lower())

if __name__ == "__main__":
    main()
