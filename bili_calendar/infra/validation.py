from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

UID_MAX_LENGTH = 20
_UID_RE = re.compile(rf"^\d{{1,{UID_MAX_LENGTH}}}$")
_ALLOWED_SCHEMES = {"http", "https"}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None
    value: str | None = None


def validate_uid(uid: object) -> ValidationResult:
    if uid is None or isinstance(uid, bool):
        return ValidationResult(False, "UID 不能为空")
    text = str(uid).strip()
    if not text:
        return ValidationResult(False, "UID 不能为空")
    if not text.isdigit():
        return ValidationResult(False, "UID 必须是纯数字")
    if not _UID_RE.match(text):
        return ValidationResult(False, f"UID 长度必须在 1-{UID_MAX_LENGTH} 位之间")
    return ValidationResult(True, None, text)


def validate_source_url(url: object, *, allow_private: bool = False) -> ValidationResult:
    if not isinstance(url, str) or not url.strip():
        return ValidationResult(False, "URL 不能为空")
    value = url.strip()
    try:
        parts = urlsplit(value)
        hostname = parts.hostname
    except ValueError:
        return ValidationResult(False, "URL 格式无效")
    if parts.scheme.lower() not in _ALLOWED_SCHEMES:
        return ValidationResult(False, f"不支持的协议: {parts.scheme or '(空)'}")
    if not hostname:
        return ValidationResult(False, "URL 格式无效")
    if not allow_private and _is_private_host(hostname):
        return ValidationResult(False, "不允许访问私有 IP 地址")
    return ValidationResult(True, None, value)


def _is_private_host(hostname: str) -> bool:
    if hostname.lower() == "localhost":
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return address.is_private or address.is_loopback or address.is_link_local
