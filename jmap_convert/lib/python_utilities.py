def to_normal_str(text):
    """
    Make sure we return a normal string with unix line endings, no
    matter if we were given bytes or str.
    """
    if text is None:
        return text
    if not isinstance(text, str):
        text = text.decode("utf-8")
    text = text.replace("\r\n", "\n")
    return text
