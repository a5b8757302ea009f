# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateNotificationRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)


class NotificationResponse(BaseModel):
    id: int
    title: str
    message: str
    recipient_role: str | None
    recipient_id: int | None
    created_date: datetime
    is_read: bool
