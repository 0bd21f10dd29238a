from borrow_buddy.config.settings import settings, Settings

__all__ = ["settings", "Settings"]
