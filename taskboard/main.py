from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth import Authenticator, Identity, get_current_user
from .config import Settings, configure_logging
from .db import init_db, make_engine, make_session_factory
from .errors import register_error_handlers
from .lifecycle import (
    BoardLifecycle,
    CardLifecycle,
    ListLifecycle,
    UserLifecycle,
    get_boards,
    get_cards,
    get_lists,
    get_users,
)
from .schemas import (
    AuthOut,
    BoardCreate,
    BoardOut,
    BoardUpdate,
    CardCreate,
    CardOut,
    CardUpdate,
    Health,
    ListCreate,
    ListOut,
    ListUpdate,
    Message,
    UserLogin,
    UserOut,
    UserRegister,
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# === User endpoints ===

users = APIRouter(prefix="/api/users", tags=["users"])


@users.post("/register", response_model=AuthOut, status_code=201)
def register(payload: UserRegister, service: UserLifecycle = Depends(get_users)):
    user, token = service.register(payload)
    return AuthOut(id=user.id, username=user.username, email=user.email, full_name=user.full_name, token=token)


@users.post("/login", response_model=AuthOut)
def login(payload: UserLogin, service: UserLifecycle = Depends(get_users)):
    user, token = service.login(payload)
    return AuthOut(id=user.id, username=user.username, email=user.email, full_name=user.full_name, token=token)


@users.get("/me", response_model=UserOut)
def me(user: Identity = Depends(get_current_user), service: UserLifecycle = Depends(get_users)):
    return UserOut.model_validate(service.me(user))


# === Board endpoints ===

boards = APIRouter(prefix="/api/boards", tags=["boards"])


@boards.post("", response_model=BoardOut, status_code=201)
def create_board(
    payload: BoardCreate,
    user: Identity = Depends(get_current_user),
    service: BoardLifecycle = Depends(get_boards),
):
    return BoardOut.model_validate(service.create(user, payload))


@boards.get("", response_model=list[BoardOut])
def list_boards(user: Identity = Depends(get_current_user), service: BoardLifecycle = Depends(get_boards)):
    return [BoardOut.model_validate(b) for b in service.list_owned(user)]


@boards.get("/{board_id}", response_model=BoardOut)
def get_board(board_id: str, user: Identity = Depends(get_current_user), service: BoardLifecycle = Depends(get_boards)):
    return BoardOut.model_validate(service.get(user, board_id))


@boards.put("/{board_id}", response_model=BoardOut)
def update_board(
    board_id: str,
    payload: BoardUpdate,
    user: Identity = Depends(get_current_user),
    service: BoardLifecycle = Depends(get_boards),
):
    return BoardOut.model_validate(service.update(user, board_id, payload))


@boards.delete("/{board_id}", response_model=Message)
def delete_board(board_id: str, user: Identity = Depends(get_current_user), service: BoardLifecycle = Depends(get_boards)):
    service.delete(user, board_id)
    return Message(message="Board deleted.")


@boards.get("/{board_id}/lists", response_model=list[ListOut])
def list_board_lists(
    board_id: str,
    user: Identity = Depends(get_current_user),
    service: ListLifecycle = Depends(get_lists),
):
    return [ListOut.model_validate(item) for item in service.for_board(user, board_id)]


# === List endpoints ===

lists = APIRouter(prefix="/api/lists", tags=["lists"])


@lists.post("", response_model=ListOut, status_code=201)
def create_list(
    payload: ListCreate,
    user: Identity = Depends(get_current_user),
    service: ListLifecycle = Depends(get_lists),
):
    return ListOut.model_validate(service.create(user, payload))


# Board lists, also served under the lists prefix.
lists.add_api_route("/{board_id}/lists", list_board_lists, methods=["GET"], response_model=list[ListOut])


@lists.get("/{list_id}", response_model=ListOut)
def get_list(list_id: str, user: Identity = Depends(get_current_user), service: ListLifecycle = Depends(get_lists)):
    return ListOut.model_validate(service.get(user, list_id))


@lists.put("/{list_id}", response_model=ListOut)
def update_list(
    list_id: str,
    payload: ListUpdate,
    user: Identity = Depends(get_current_user),
    service: ListLifecycle = Depends(get_lists),
):
    return ListOut.model_validate(service.update(user, list_id, payload))


@lists.delete("/{list_id}", response_model=Message)
def delete_list(list_id: str, user: Identity = Depends(get_current_user), service: ListLifecycle = Depends(get_lists)):
    service.delete(user, list_id)
    return Message(message="List deleted along with its cards.")


# === Card endpoints ===

cards = APIRouter(prefix="/api/cards", tags=["cards"])


@cards.post("", response_model=CardOut, status_code=201)
def create_card(
    payload: CardCreate,
    user: Identity = Depends(get_current_user),
    service: CardLifecycle = Depends(get_cards),
):
    return CardOut.model_validate(service.create(user, payload))


@cards.get("/list/{list_id}", response_model=list[CardOut])
def list_cards(list_id: str, user: Identity = Depends(get_current_user), service: CardLifecycle = Depends(get_cards)):
    return [CardOut.model_validate(card) for card in service.for_list(user, list_id)]


@cards.get("/{card_id}", response_model=CardOut)
def get_card(card_id: str, user: Identity = Depends(get_current_user), service: CardLifecycle = Depends(get_cards)):
    return CardOut.model_validate(service.get(user, card_id))


@cards.put("/{card_id}", response_model=CardOut)
def update_card(
    card_id: str,
    payload: CardUpdate,
    user: Identity = Depends(get_current_user),
    service: CardLifecycle = Depends(get_cards),
):
    return CardOut.model_validate(service.update(user, card_id, payload))


@cards.delete("/{card_id}", response_model=Message)
def delete_card(card_id: str, user: Identity = Depends(get_current_user), service: CardLifecycle = Depends(get_cards)):
    service.delete(user, card_id)
    return Message(message="Card deleted.")


# === App assembly ===


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    engine = make_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        logger.info("Database initialized")
        yield
        engine.dispose()
        logger.info("Shutting down...")

    app = FastAPI(title="Taskboard API", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = make_session_factory(engine)
    app.state.authenticator = Authenticator(
        secret=settings.jwt_secret,
        token_ttl=timedelta(days=settings.token_ttl_days),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/api/health", response_model=Health)
    def health() -> Health:
        return Health()

    app.include_router(users)
    app.include_router(boards)
    app.include_router(lists)
    app.include_router(cards)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
