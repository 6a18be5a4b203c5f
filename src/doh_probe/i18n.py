"""
Internationalization (i18n) module for the DoH probe.

Provides translations for all user-facing messages in English (en) and
Chinese (zh).
"""

from typing import Optional


# Supported languages
SUPPORTED_LANGUAGES = frozenset({"en", "zh"})
DEFAULT_LANGUAGE = "en"


# Translation dictionary with all messages
# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Per-attempt errors
    "attempt.validation_failed": {
        "en": "Request validation failed: {error}",
        "zh": "请求参数校验失败：{error}",
    },
    "attempt.timeout": {
        "en": "Request timed out after {timeout_ms} ms",
        "zh": "请求在 {timeout_ms} 毫秒后超时",
    },
    "attempt.network_error": {
        "en": "Network error: {error}",
        "zh": "网络错误：{error}",
    },
    "attempt.json_decode_failed": {
        "en": "Failed to parse JSON response: {error}",
        "zh": "解析 JSON 响应失败：{error}",
    },
    "attempt.wire_decode_failed": {
        "en": "Failed to parse DNS wire message: {error}",
        "zh": "解析 DNS 二进制报文失败：{error}",
    },
    "attempt.wire_truncated": {
        "en": "DNS wire message ended early ({reason})",
        "zh": "DNS 二进制报文提前结束（{reason}）",
    },
    "attempt.text_response": {
        "en": "Server returned a text response: {snippet}",
        "zh": "服务器返回文本响应：{snippet}",
    },
    "attempt.text_response_empty": {
        "en": "Server returned an empty text response",
        "zh": "服务器返回了空的文本响应",
    },
    "attempt.http_status": {
        "en": "Server answered with HTTP status {status}",
        "zh": "服务器返回 HTTP 状态码 {status}",
    },
    "attempt.no_addresses": {
        "en": "No valid A/AAAA records found in the response",
        "zh": "未在响应中找到有效的 A/AAAA 记录",
    },
    "attempt.no_ech": {
        "en": "No HTTPS record with an ECH parameter found",
        "zh": "未发现包含 ECH 参数的 HTTPS 记录",
    },

    # Per-provider results
    "provider.query_failed": {
        "en": "DoH query failed",
        "zh": "DoH 查询失败",
    },
    "provider.https_query_failed": {
        "en": "HTTPS record query failed",
        "zh": "HTTPS 记录查询失败",
    },
    "provider.unexpected_error": {
        "en": "Unexpected error: {error}",
        "zh": "未知错误：{error}",
    },

    # A-record verdicts
    "status.success": {
        "en": "Success",
        "zh": "成功",
    },
    "status.failure": {
        "en": "Failure",
        "zh": "失败",
    },
    "status.partial_match": {
        "en": "Partial match",
        "zh": "部分一致",
    },
    "doh.target_failed": {
        "en": "Target DoH query failed",
        "zh": "目标 DoH 服务查询失败",
    },
    "doh.all_match": {
        "en": "Target DoH answers match {references}.",
        "zh": "目标 DoH 服务返回的结果与 {references} 完全一致。",
    },
    "doh.partial_match": {
        "en": "Target DoH answers match {matched} but not {unmatched}.",
        "zh": "目标 DoH 服务与 {matched} 结果一致，但与 {unmatched} 不完全一致。",
    },
    "doh.no_match": {
        "en": "Target DoH answers match none of {references}.",
        "zh": "目标 DoH 服务返回的结果与 {references} 均不一致。",
    },
    "doh.ech_inconsistent": {
        "en": " The ECH configuration returned by the target differs from the authoritative answers and may have been tampered with.",
        "zh": " 检测到目标 DoH 返回的 ECH 配置与权威解析不一致，可能存在篡改。",
    },
    "doh.ech_consistent": {
        "en": " The ECH configuration also matches the authoritative answers.",
        "zh": " 同时确认 ECH 配置与权威解析一致。",
    },
    "doh.joiner": {
        "en": " and ",
        "zh": " 和 ",
    },

    # ECH verdicts
    "ech.enabled": {
        "en": "An HTTPS record with an ECH parameter was found; ECH appears to be enabled for this domain.",
        "zh": "检测到 HTTPS 记录包含 ECH 参数，推测该域名已启用 ECH。",
    },
    "ech.not_enabled": {
        "en": "No ECH parameter was found in the reference resolvers' HTTPS records; ECH is probably not enabled.",
        "zh": "未在权威 DoH 服务的 HTTPS 记录中发现 ECH 参数，可能未启用 ECH。",
    },
    "ech_note.both_missing": {
        "en": "Neither {reference} nor the target returned an ECH configuration.",
        "zh": "{reference} 和目标 DoH 均未返回 ECH 配置。",
    },
    "ech_note.target_missing": {
        "en": "The target returned no ECH configuration, but {reference} did.",
        "zh": "目标 DoH 未返回 ECH 配置，但 {reference} 返回了配置。",
    },
    "ech_note.reference_missing": {
        "en": "{reference} returned no ECH configuration; cannot compare.",
        "zh": "{reference} 未返回 ECH 配置，无法比对。",
    },
    "ech_note.match": {
        "en": "The target's ECH configuration matches {reference}.",
        "zh": "目标 DoH 与 {reference} 的 ECH 配置一致。",
    },
    "ech_note.mismatch": {
        "en": "The target's ECH configuration differs from {reference}.",
        "zh": "目标 DoH 与 {reference} 的 ECH 配置不一致。",
    },

    # CLI messages
    "cli.checking_target": {
        "en": "Checking DoH endpoint {target} with {domain}...",
        "zh": "正在使用 {domain} 检测 DoH 服务 {target}……",
    },
    "cli.checking_ech": {
        "en": "Checking ECH for {domain}...",
        "zh": "正在检测 {domain} 的 ECH……",
    },
    "cli.result": {
        "en": "Result: {status}",
        "zh": "结果：{status}",
    },
    "cli.ech_enabled": {
        "en": "ECH enabled: {value}",
        "zh": "ECH 已启用：{value}",
    },
    "cli.provider_ok": {
        "en": "{provider}: {values} ({latency} ms, {encodings})",
        "zh": "{provider}：{values}（{latency} 毫秒，{encodings}）",
    },
    "cli.provider_failed": {
        "en": "{provider}: failed - {error}",
        "zh": "{provider}：失败 - {error}",
    },
}


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Get a translated message by key.

    Args:
        key: The message key (e.g., 'attempt.timeout')
        language: Language code ('en' or 'zh'). Defaults to DEFAULT_LANGUAGE.
        **kwargs: Format arguments for the message template

    Returns:
        The translated and formatted message string.
        If the key is not found, returns the key itself.
        If the language is not found, falls back to DEFAULT_LANGUAGE.

    Examples:
        >>> get_message('status.success', 'en')
        'Success'
        >>> get_message('attempt.timeout', 'en', timeout_ms=5000)
        'Request timed out after 5000 ms'
    """
    if language is None or language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language)
    if message is None:
        message = translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            # If formatting fails, return the unformatted message
            pass

    return message


def get_all_message_keys() -> set[str]:
    """Get all available message keys."""
    return set(TRANSLATIONS.keys())


def has_translation(key: str, language: str) -> bool:
    """Check if a translation exists for a key and language."""
    translations = TRANSLATIONS.get(key)
    if translations is None:
        return False
    return language in translations


def get_missing_translations(language: str) -> set[str]:
    """
    Get all message keys that are missing translations for a language.

    Args:
        language: The language code to check

    Returns:
        Set of message keys missing translations for the specified language.
    """
    return {key for key, translations in TRANSLATIONS.items() if language not in translations}


def validate_translations() -> dict[str, set[str]]:
    """
    Validate that all languages have all translations.

    Returns:
        Dictionary mapping language codes to sets of missing message keys.
        Empty sets indicate complete translations.
    """
    return {language: get_missing_translations(language) for language in SUPPORTED_LANGUAGES}
