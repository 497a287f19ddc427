"""Minimal demonstration of the document agent loop."""

import sys

from legal_skill import run_agent_loop
from legal_skill.prompts import load_system_prompt

if __name__ == "__main__":
    path = sys.argv[1] if len(sys.argv) > 1 else "contract.pdf"
    instruction = f"Read the document at \"{path}\" with read_document and summarize its key obligations."
    reply = run_agent_loop(load_system_prompt("contract-review"), instruction, on_text=lambda t: print(t, file=sys.stderr))
    print("User:", instruction)
    print("Agent:", reply)
