from legal_skill.agents.legal_skills import generate_brief, review_contract, triage_nda

__all__ = ["generate_brief", "review_contract", "triage_nda"]
