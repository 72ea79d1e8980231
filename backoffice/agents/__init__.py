"""
Prompt templates for the LLM-backed search helpers.

- OpenAI chat: query enhancement
- DeepSeek chat: search routing, query optimization, result analysis
"""
