"""unigif - turns photos, videos and links into Telegram GIFs."""

__version__ = "0.1.0"
__logo__ = "🎞️"
