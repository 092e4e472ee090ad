"""Core processing modules package.

- extraction: tiered PDF text extraction (primary, structural, OCR)
- analysis: prompt assembly, provider call and schema repair for risk analysis
- chat: grounded and general chat turns over persisted threads
- gate: plan check in front of chat capabilities
- storage: asyncpg repositories for analyses, threads and plans
- llm: provider client and usage/cost logging
"""
