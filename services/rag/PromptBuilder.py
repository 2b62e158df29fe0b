import re

COMPARISON_PATTERN = re.compile(
    r"compare|difference|contrast|versus|vs\.|which.*better|which.*more|both.*mention|similarities|distinctions",
    re.IGNORECASE,
)

NOT_FOUND_ANSWER = "This information could not be found in the provided documents."


def is_comparison_question(question: str) -> bool:
    return COMPARISON_PATTERN.search(question) is not None


def build_rag_prompt(
    context: str,
    question: str,
    active_file_count: int = 1,
    file_names: list[str] | None = None,
    answer_language: str | None = None,
) -> str:
    """Build the grounded answer prompt.

    Comparison instructions are added only when the question reads like a
    comparison and more than one document is active.

    Args:
        context (str): Rendered context from the retrieval engine.
        question (str): The user question.
        active_file_count (int): Number of documents the question is asked against.
        file_names (list[str] | None): Names of those documents.
        answer_language (str | None): If set, the model is told to answer in this language.

    Returns:
        str: The full prompt.
    """
    file_names = file_names or []

    base_prompt = "You are a helpful AI assistant that answers questions based on the provided document context."

    if is_comparison_question(question) and active_file_count > 1:
        base_prompt += (
            "\n\nCOMPARISON MODE ACTIVE:\n"
            f"The user wants to compare or contrast several documents: {', '.join(file_names)}.\n\n"
            "When answering comparison questions:\n"
            "- State clearly which information comes from which document\n"
            "- Highlight similarities AND differences\n"
            "- Use the document names when citing sources\n"
            "- Give a comparative analysis, not just separate summaries\n"
            "- If one document covers a topic in more detail, say so explicitly"
        )

    instructions = [
        "- Answer the question ONLY from the information in the context above",
        f'- If the answer is not in the context, say "{NOT_FOUND_ANSWER}"',
        "- Be clear and thorough",
        "- Quote or reference specific passages where possible",
        "- If the question is unclear, ask for clarification",
    ]
    if answer_language:
        instructions.append(f"- Answer in {answer_language}")

    return (
        f"{base_prompt}\n\n"
        f"CONTEXT FROM DOCUMENTS:\n{context}\n\n"
        f"USER QUESTION:\n{question}\n\n"
        "INSTRUCTIONS:\n" + "\n".join(instructions) + "\n\n"
        "ANSWER:"
    )
