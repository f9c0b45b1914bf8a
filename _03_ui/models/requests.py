"""Pydantic request models for the Wordpix API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CreateChallengeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    sentence: str = Field(min_length=1, max_length=1000)
    created_by: str = Field(alias="createdBy", min_length=1)
    prize_amount: int = Field(default=0, ge=0, alias="prizeAmount")


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    word_index: int = Field(alias="wordIndex", ge=0)
    user_id: str = Field(alias="userId", min_length=1)


class GuessWordRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    guess: str = Field(min_length=1, max_length=200)
    user_id: str = Field(alias="userId", min_length=1)
    word_index: int = Field(alias="wordIndex", ge=0)


class GuessRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    guess: str = Field(min_length=1, max_length=1000)
    user_id: str = Field(alias="userId", min_length=1)
