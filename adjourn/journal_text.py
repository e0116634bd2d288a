PREVIEW_LENGTH = 120
PREVIEW_MIN_CUT = 80


def count_words(content: str | None) -> int:
    if not content:
        return 0
    return len(content.split())


def build_preview(content: str | None, max_chars: int = PREVIEW_LENGTH) -> str:
    text = content or ""
    if len(text) <= max_chars:
        return text
    preview = text[:max_chars]
    # cut at a word boundary unless that would leave too little
    cutoff = preview.rfind(" ")
    if cutoff > PREVIEW_MIN_CUT:
        preview = preview[:cutoff]
    return f"{preview}..."
