from __future__ import annotations

from dataclasses import dataclass

from pickup_chat.domain.entities.user import UserProfile


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated user as supplied by the identity provider."""

    user_id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None

    @property
    def profile(self) -> UserProfile:
        return UserProfile(
            id=self.user_id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            profile_image_url=self.profile_image_url,
        )

    @property
    def display_name(self) -> str:
        return self.profile.display_name
