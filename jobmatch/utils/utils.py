import os
import json
import numpy as np
from dotenv import load_dotenv
import requests

from jobmatch.utils.exceptions import EmbeddingError

load_dotenv()

OLLAMA = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
LLM_MODEL = os.getenv("LLM_MODEL", "llama3.1:8b")
EMBED_MODEL = os.getenv("EMBED_MODEL", "nomic-embed-text")


def clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, x))


def round_half_up(x: float) -> int:
    # round() is banker's rounding; percentages round .5 up
    return int(np.floor(x + 0.5))


def ollama_generate(prompt: str, model: str = None, temperature: float = 0.2,
                    base_url: str = None, timeout: int = 120) -> str:
    model = model or LLM_MODEL
    url = f"{base_url or OLLAMA}/api/generate"
    resp = requests.post(
        url,
        json={
            "model": model,
            "prompt": prompt,
            "options": {"temperature": temperature},
            "stream": False  # important
        },
        timeout=timeout,
    )
    resp.raise_for_status()
    return resp.json().get("response", "") or ""


def ollama_embed(texts, model: str = None, base_url: str = None, timeout: int = 30):
    model = model or EMBED_MODEL
    url = f"{base_url or OLLAMA}/api/embed"
    resp = requests.post(url, json={"model": model, "input": texts}, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    embeddings = data.get("embeddings")
    if not embeddings:
        raise EmbeddingError("Embedding response carried no vectors", model_name=model)
    # supports single or batch
    if isinstance(texts, str):
        return np.array(embeddings[0], dtype=np.float32)
    return np.array(embeddings, dtype=np.float32)


def safe_json(s: str, fallback: dict):
    try:
        # heuristics to find JSON inside
        start = s.find("{")
        end = s.rfind("}")
        if start >= 0 and end >= 0:
            return json.loads(s[start:end+1])
        return fallback
    except (ValueError, TypeError, AttributeError):
        return fallback
