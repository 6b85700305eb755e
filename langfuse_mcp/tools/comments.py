"""Comments on traces, observations, sessions and prompts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from ..client import LangfuseClient
from .common import ToolInput

ObjectType = Literal["trace", "observation", "session", "prompt"]


class ListCommentsInput(ToolInput):
    object_type: ObjectType | None = None
    object_id: str | None = None
    author_user_id: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class CommentIdInput(ToolInput):
    comment_id: str


class CreateCommentInput(ToolInput):
    object_type: ObjectType
    object_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=5000)
    author_user_id: str | None = None


async def list_comments(client: LangfuseClient, args: ListCommentsInput) -> Any:
    return await client.list_comments(
        page=args.page,
        limit=args.limit,
        object_type=args.object_type,
        object_id=args.object_id,
        author_user_id=args.author_user_id,
    )


async def get_comment(client: LangfuseClient, args: CommentIdInput) -> Any:
    return await client.get_comment(args.comment_id)


async def create_comment(client: LangfuseClient, args: CreateCommentInput) -> Any:
    return await client.create_comment(
        object_type=args.object_type,
        object_id=args.object_id,
        content=args.content,
        author_user_id=args.author_user_id,
    )
