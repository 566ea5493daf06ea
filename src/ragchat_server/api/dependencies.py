from fastapi import Request

from ..chat.handler import ChatHandler


def get_namespace(request: Request) -> str:
    return request.app.state.namespace


def get_chat_handler(request: Request) -> ChatHandler:
    return request.app.state.chat_handler
