"""Azure OpenAI wrapper for the portfolio narrative review.

Sends the PortfolioPayload (already in base currency, ratios as fractions)
as a Traditional Chinese prompt to an Azure OpenAI chat-completions
deployment and returns the generated review text.

Connection settings come from environment variables (loaded from the
project-root .env):
  AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY,
  AZURE_OPENAI_DEPLOYMENT_NAME, AZURE_OPENAI_API_VERSION (optional)
When they are not set, is_available() returns False.
"""

import os
import sys
import time
from pathlib import Path
from typing import Callable, Optional

import requests
from dotenv import load_dotenv

from src.core.models import (
    CURRENCY_SYMBOLS,
    MARKET_LABELS,
    RISK_LEVEL_LABELS,
    PortfolioPayload,
)
from src.core.settings import load_settings

# Load .env from project root
load_dotenv(Path(__file__).resolve().parents[2] / ".env")

_REQUIRED_ENV = (
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_DEPLOYMENT_NAME",
)

DISCLAIMER = "以上內容僅為系統依規則產生之分析，不構成投資建議。"


class ContentFilteredError(RuntimeError):
    """The deployment's content filter refused the request (not retried)."""


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def is_available() -> bool:
    """Check if all Azure OpenAI environment variables are set."""
    return all(os.environ.get(name) for name in _REQUIRED_ENV)


def _build_url() -> str:
    settings = load_settings()["advice"]
    endpoint = os.environ["AZURE_OPENAI_ENDPOINT"].rstrip("/")
    deployment = os.environ["AZURE_OPENAI_DEPLOYMENT_NAME"]
    api_version = os.environ.get("AZURE_OPENAI_API_VERSION") or settings["api_version"]
    return (
        f"{endpoint}/openai/deployments/{deployment}/chat/completions"
        f"?api-version={api_version}"
    )


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------


def _signed(value: float) -> str:
    return "+" if value >= 0 else ""


def format_payload_for_prompt(payload: PortfolioPayload) -> str:
    """Render the payload as the user message of the chat request."""
    risk_label = RISK_LEVEL_LABELS.get(payload.risk_level, payload.risk_level)
    market_label = MARKET_LABELS.get(payload.market, payload.market)
    cs = CURRENCY_SYMBOLS.get(payload.base_currency, "$")

    holding_lines = []
    for h in payload.holdings:
        sign = _signed(h.unrealized_pnl)
        unit = "面額" if h.asset_class == "bond" else "股"
        holding_lines.append(
            f"- {h.symbol} ({h.name}): 持有 {h.quantity:g} {unit}, "
            f"成本 {cs}{h.cost_basis:.2f}, 現價 {cs}{h.current_price:.2f}, "
            f"市值 {cs}{h.market_value:.2f}, "
            f"損益 {sign}{cs}{h.unrealized_pnl:.2f} "
            f"({sign}{h.unrealized_pnl_percent * 100:.2f}%), "
            f"佔比 {h.weight * 100:.2f}%"
        )

    total_sign = _signed(payload.total_unrealized_pnl)
    total_pct = (
        payload.total_unrealized_pnl / payload.total_cost * 100
        if payload.total_cost > 0
        else 0.0
    )

    lines = [
        f"投資組合名稱: {payload.profile_name}",
        f"市場: {market_label}",
        f"幣別: {payload.base_currency}",
        f"風險偏好: {risk_label}",
        f"總市值: {cs}{payload.total_market_value:.2f}",
        f"總成本: {cs}{payload.total_cost:.2f}",
        f"總損益: {total_sign}{cs}{payload.total_unrealized_pnl:.2f} "
        f"({total_sign}{total_pct:.2f}%)",
        f"前三大持股集中度: {payload.concentration * 100:.2f}%",
    ]

    breakdown = payload.asset_class_breakdown
    if breakdown is not None and breakdown.bond.total_market_value > 0:
        lines.append(
            f"資產配置: 股票 {breakdown.equity.weight * 100:.2f}%, "
            f"債券 {breakdown.bond.weight * 100:.2f}% "
            f"(公司債 {breakdown.bond.corp.weight * 100:.2f}%, "
            f"美國公債 {breakdown.bond.ust.weight * 100:.2f}%)"
        )

    lines.append("")
    lines.append("持股明細:")
    lines.extend(holding_lines)
    return "\n".join(lines).strip()


def build_system_prompt(payload: PortfolioPayload) -> str:
    """System message with market-specific context."""
    if payload.market == "TW":
        context = "此為台股投資組合，請考量台灣股市特性、產業結構與台幣計價。"
    elif payload.market == "MIXED":
        context = (
            f"此為混合投資組合，同時包含美股與台股。所有市值已依匯率轉換為 "
            f"{payload.base_currency} 計價。請同時考量美國與台灣股市特性。"
        )
    else:
        context = "此為美股投資組合，請考量美國股市特性與美元計價。"

    return (
        f"你是一位謹慎保守的投資組合顧問，會用繁體中文回答。{context}\n\n"
        "你會根據使用者的持股資料，針對每一檔股票提出「建議加碼 / 減碼 / 持有」"
        "與簡短理由，並給出整體組合的集中度與風險提醒。禁止給出任何保證獲利的語句，"
        f"並在最後加上一句：『{DISCLAIMER}』\n\n"
        "請按照以下格式回覆：\n"
        "1. 首先簡要評估整體組合狀況\n"
        "2. 針對每檔持股給出建議（加碼/減碼/持有）與理由\n"
        "3. 給出風險提醒與集中度建議\n"
        "4. 最後加上免責聲明"
    )


# ---------------------------------------------------------------------------
# API call
# ---------------------------------------------------------------------------


def _call_azure_openai(system_prompt: str, user_content: str) -> str:
    """Single chat-completions request.

    Returns
    -------
    str
        Message content of the first choice.

    Raises
    ------
    ContentFilteredError
        finish_reason == "content_filter" with no content.
    RuntimeError
        HTTP error, empty choices or empty content.
    """
    settings = load_settings()["advice"]
    response = requests.post(
        _build_url(),
        headers={
            "api-key": os.environ["AZURE_OPENAI_API_KEY"],
            "Content-Type": "application/json",
        },
        json={
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": settings["temperature"],
            "max_completion_tokens": settings["max_completion_tokens"],
        },
        timeout=settings["timeout"],
    )

    if response.status_code != 200:
        raise RuntimeError(
            f"Azure OpenAI API error: {response.status_code} - {response.text}"
        )

    data = response.json()
    choices = data.get("choices") or []
    if not choices:
        raise RuntimeError("Azure OpenAI returned no choices")

    content = (choices[0].get("message") or {}).get("content")
    if not content:
        finish_reason = choices[0].get("finish_reason")
        if finish_reason == "content_filter":
            raise ContentFilteredError(
                "Request blocked by the Azure content filter; "
                "adjust the portfolio data and retry"
            )
        raise RuntimeError(
            f"Azure OpenAI returned empty content (finish_reason: {finish_reason})"
        )
    return content


def get_portfolio_advice(
    payload: PortfolioPayload,
    max_retries: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Request a narrative review of *payload*.

    Retries failed attempts with a linear backoff (1s, 2s, ...).  A
    content-filter refusal is not retried.

    Raises
    ------
    RuntimeError
        Azure OpenAI is not configured, or every attempt failed.
    """
    if not is_available():
        raise RuntimeError(
            "Azure OpenAI is not configured (set "
            + ", ".join(_REQUIRED_ENV)
            + ")"
        )
    if max_retries is None:
        max_retries = int(load_settings()["advice"]["max_retries"])

    system_prompt = build_system_prompt(payload)
    user_content = format_payload_for_prompt(payload)

    last_error: Optional[Exception] = None
    for attempt in range(1, max_retries + 1):
        try:
            return _call_azure_openai(system_prompt, user_content)
        except ContentFilteredError as e:
            last_error = e
            print(f"[advice_client] Warning: {e}", file=sys.stderr)
            break
        except (requests.exceptions.RequestException, RuntimeError, ValueError) as e:
            last_error = e
            print(
                f"[advice_client] Warning: request failed "
                f"(attempt {attempt}/{max_retries}): {e}",
                file=sys.stderr,
            )
            if attempt < max_retries:
                sleep(1.0 * attempt)

    raise RuntimeError(f"Failed to get portfolio advice: {last_error}")
