"""
Profile endpoints: grounding/reasoning mode, persona and avatar.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from ..agents.assistant import generate_avatar
from ..core.errors import RemoteServiceError
from ..core.profile import SYSTEM_INSTRUCTION_PRESETS, UserProfile
from .schemas import AvatarRequest, AvatarResponse, ProfileResponse, ProfileUpdateRequest
from .services import Services, get_services

router = APIRouter()


def _to_response(profile: UserProfile) -> ProfileResponse:
    return ProfileResponse(**profile.to_dict())


@router.get("/{user_id}", response_model=ProfileResponse)
def get_profile(user_id: str, services: Services = Depends(get_services)):
    return _to_response(services.profiles.get(user_id))


@router.patch("/{user_id}", response_model=ProfileResponse)
def update_profile(user_id: str, req: ProfileUpdateRequest, services: Services = Depends(get_services)):
    system_instruction = req.system_instruction
    if system_instruction is None and req.preset is not None:
        system_instruction = SYSTEM_INSTRUCTION_PRESETS[req.preset]

    profile = services.profiles.update(
        user_id,
        display_name=req.display_name,
        reasoning_mode=req.reasoning_mode,
        grounding_mode=req.grounding_mode,
        system_instruction=system_instruction,
    )
    return _to_response(profile)


@router.post("/{user_id}/avatar", response_model=AvatarResponse)
def create_avatar(user_id: str, req: AvatarRequest, services: Services = Depends(get_services)):
    if services.gemini_client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Image generation is not configured")
    try:
        avatar = generate_avatar(services.chat_provider, services.gemini_client, services.image_model, req.prompt)
    except RemoteServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    services.profiles.update(user_id, avatar=avatar)
    return AvatarResponse(avatar=avatar)
