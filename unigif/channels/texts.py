"""User-facing bot texts."""

WELCOME_MESSAGE = """
<b>👋 Welcome to UniGif!</b>

I can convert your media into lightweight Telegram GIFs.

<b>✨ Features:</b>
▪️ <b>Photos</b> → GIFs (Animated)
▪️ <b>Videos</b> → GIFs (Max 12s)
▪️ <b>Links</b> → Discord, Tenor, Giphy supported

<i>Just send me a file or a link to start!</i>

🔗 <a href="{source_link}">Open Source Project</a>
"""


def welcome_message(source_link: str) -> str:
    return WELCOME_MESSAGE.format(source_link=source_link).strip()
