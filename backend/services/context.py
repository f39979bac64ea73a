from typing import Any, Dict, List

from sqlalchemy.orm import Session

from services import history

CONTEXT_WINDOW = 20

SYSTEM_PROMPT = """You are a professional, knowledgeable customer support assistant for TechGear Store, an e-commerce platform.

Your role:
- Provide accurate, concise, and helpful answers to customer questions
- Maintain a calm, professional, and respectful tone at all times
- Be clear, direct, and solution-oriented
- Answer whatever question is asked to you

Store Information:
- This is TechGear Store, an e-commerce platform
- Shipping: Worldwide (USA: 3-5 days, International: 7-14 days)
- Returns: 30-day policy, items must be unused
- Support Hours: Mon-Fri, 9 AM - 6 PM EST
- Payment: Visa, Mastercard, PayPal, Apple Pay

Answer support questions clearly and warmly."""

_ROLES = {history.USER: "user", history.AI: "assistant"}


def to_turn(sender: str, text: str) -> Dict[str, str]:
    return {"role": _ROLES.get(sender, "user"), "content": text}


def extract_text(content: Any) -> str:
    """Text of a chat turn: plain string content or the first text part of a part list."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                return item.get("text") or ""
    return ""


def build_prompt(db: Session, conv_id: str, window: int = CONTEXT_WINDOW) -> List[Dict[str, str]]:
    recent = history.get_recent_messages(db, conv_id, limit=window)
    turns = [{"role": "system", "content": SYSTEM_PROMPT}]
    turns.extend(to_turn(m.sender, m.text) for m in recent)
    return turns
