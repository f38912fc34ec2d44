from fastapi import APIRouter

from ..prompt_store import active_policy, get_active_prompt
from ..schemas import ActivePrompt

router = APIRouter(prefix="/prompts", tags=["prompts"])


@router.get("/active", response_model=ActivePrompt)
async def get_prompt():
    policy = active_policy()
    return ActivePrompt(
        variant=policy.variant.value,
        preserveLineBreaks=policy.preserve_lines,
        prompt=await get_active_prompt(),
    )
