"""Pipeline stages: cross-origin filter, JSON body decoder and router."""

from .body import JsonBodyDecoder
from .cors import CorsFilter, CorsPolicy
from .router import Router, compile_pattern

__all__ = ["CorsFilter", "CorsPolicy", "JsonBodyDecoder", "Router", "compile_pattern"]
