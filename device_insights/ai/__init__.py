"""
AI Module - provider clients, prompt templates and monitoring.

Module Structure:
================
- providers/: AI provider clients (OpenAI, Azure OpenAI, Anthropic, Gemini)
- prompts/: Prompt templates for insight generation
- monitoring/: Logging, metrics, and usage tracking

The orchestration package decides WHICH provider handles a request; this
package only knows HOW to talk to each one.
"""

__version__ = "0.1.0"
