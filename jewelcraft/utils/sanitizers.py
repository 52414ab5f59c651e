"""
Text sanitization for customer input and model output
"""
import re
import html


def sanitize_html(content: str) -> str:
    """
    Remove scripts, styles, and dangerous tags
    Args:
        content: Text that may carry HTML
    Returns:
        Content safe to store and echo back
    """
    if not content:
        return content

    content = re.sub(r'<script[^>]*>.*?</script>', '', content, flags=re.IGNORECASE | re.DOTALL)
    content = re.sub(r'<style[^>]*>.*?</style>', '', content, flags=re.IGNORECASE | re.DOTALL)
    content = re.sub(r'<iframe[^>]*>.*?</iframe>', '', content, flags=re.IGNORECASE | re.DOTALL)
    content = re.sub(r'<object[^>]*>.*?</object>', '', content, flags=re.IGNORECASE | re.DOTALL)
    content = re.sub(r'<embed[^>]*>', '', content, flags=re.IGNORECASE)

    # Remove event handlers
    content = re.sub(r'\s+on\w+\s*=\s*["\'][^"\']*["\']', '', content, flags=re.IGNORECASE)

    # Remove javascript: URLs
    content = re.sub(r'javascript:', '', content, flags=re.IGNORECASE)

    return content.strip()


def strip_html_tags(content: str) -> str:
    """
    Remove all HTML tags, leaving only text content
    Args:
        content: HTML content
    Returns:
        Plain text content
    """
    if not content:
        return content

    text = re.sub(r'<[^>]+>', '', content)
    text = html.unescape(text)
    return clean_whitespace(text)


def clean_whitespace(content: str) -> str:
    """Collapse runs of spaces and tabs, keep line breaks"""
    if not content:
        return content

    content = content.replace('\t', ' ')
    content = re.sub(r' {2,}', ' ', content)
    content = re.sub(r' *\n *', '\n', content)
    content = re.sub(r'\n{3,}', '\n\n', content)
    return content.strip()


def normalize_vision(text: str) -> str:
    """
    Customer vision as a single plain-text line
    Markup and control characters are dropped, quotes are kept since they carry engravings
    """
    if not text:
        return ""

    text = strip_html_tags(sanitize_html(text))
    text = re.sub(r'[\x00-\x08\x0b-\x1f\x7f]', '', text)
    return re.sub(r'\s+', ' ', text).strip()


def clean_specifications(text: str) -> str:
    """Tidy model-written specifications: no markup or code fences, at most one blank line"""
    if not text:
        return text

    text = sanitize_html(text)
    text = re.sub(r'^```[a-zA-Z]*\s*$', '', text, flags=re.MULTILINE)
    return clean_whitespace(text)


def safe_path_segment(value: str, default: str = "anonymous") -> str:
    """Storage path segment restricted to letters, digits, dash and underscore"""
    cleaned = re.sub(r'[^A-Za-z0-9_-]', '', value or "")
    return cleaned or default
