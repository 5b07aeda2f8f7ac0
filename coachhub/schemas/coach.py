"""Public coach profile shown to parents browsing the catalog."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .base import Money
from .course import CourseResponse


class CoachPublicProfileResponse(BaseModel):
    id: str
    user_id: str
    first_name: str
    last_name: str
    domain: str
    experience_description: Optional[str] = None
    address: Optional[str] = None
    languages: List[str] = []
    hourly_rate: Optional[Money] = None
    bio: Optional[str] = None
    average_rating: Optional[float] = None
    total_reviews: int = 0
    courses: List[CourseResponse] = []

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "CoachPublicProfileResponse":
        coach = profile["coach"]
        return cls(
            id=coach.id,
            user_id=coach.user_id,
            first_name=coach.user.first_name,
            last_name=coach.user.last_name,
            domain=coach.domain,
            experience_description=coach.experience_description,
            address=coach.address,
            languages=coach.languages or [],
            hourly_rate=coach.hourly_rate,
            bio=coach.bio,
            average_rating=profile["average_rating"],
            total_reviews=profile["total_reviews"],
            courses=[CourseResponse.model_validate(course) for course in profile["courses"]],
        )
