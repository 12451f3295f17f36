# accountshop/routers/preferences.py
from fastapi import APIRouter, Depends

from accountshop.core.context import AppContext, get_context
from accountshop.schemas.session import ThemePreference

router = APIRouter(prefix="/preferences", tags=["Preferences"])

THEME_KEY = "theme"
DEFAULT_THEME = "dark"


@router.get("/theme", response_model=ThemePreference)
def get_theme(context: AppContext = Depends(get_context)):
    """Stored UI theme, "dark" unless changed."""
    theme = context.persistent_store.get(THEME_KEY) or DEFAULT_THEME
    if theme not in ("dark", "light"):
        theme = DEFAULT_THEME
    return ThemePreference(theme=theme)


@router.put("/theme", response_model=ThemePreference)
def set_theme(payload: ThemePreference, context: AppContext = Depends(get_context)):
    context.persistent_store.set(THEME_KEY, payload.theme)
    return payload
