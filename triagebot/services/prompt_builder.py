"""
Prompt construction for the model service.

All builders are pure: they perform no I/O and always apply the file, line
and character caps before any text is embedded in a prompt.
"""

from typing import List, Sequence

from triagebot.models.changed_file import ChangedFile


MAX_FILES = 3
MAX_PATCH_LINES = 20
MAX_CONTENT_CHARS = 2000

SECTION_SEPARATOR = "\n\n---\n\n"

LABEL_VOCABULARY = ("bug", "enhancement", "docs", "test", "refactor", "frontend", "backend")


def truncate_files(files: Sequence[ChangedFile]) -> List[ChangedFile]:
    """
    Cap a file list to the prompt limits.
    
    Keeps the first ``MAX_FILES`` files, the first ``MAX_PATCH_LINES`` lines of
    each patch and the first ``MAX_CONTENT_CHARS`` characters of each content.
    The inputs are not modified.
    """
    truncated = []
    for changed in list(files)[:MAX_FILES]:
        patch = changed.patch
        if patch is not None:
            patch = "\n".join(patch.split("\n")[:MAX_PATCH_LINES])
        content = changed.content
        if content is not None:
            content = content[:MAX_CONTENT_CHARS]
        truncated.append(changed.model_copy(update={"patch": patch, "content": content}))
    return truncated


def build_summary_prompt(title: str, url: str) -> str:
    """Build the instruction asking for a concise pull request summary."""
    return (
        "Provide a concise summary for the following pull request:\n\n"
        f"Title: {title}\n\n"
        f"URL: {url}"
    )


def build_review_prompt(files: Sequence[ChangedFile]) -> str:
    """
    Build the commit review instruction.
    
    The prompt carries a ``<<DIFF>>`` section with each truncated patch and a
    ``<<FILES>>`` section with each truncated file body, followed by an
    ``<<END>>`` marker. Files without a patch or without content are left
    out of the corresponding section.
    """
    capped = truncate_files(files)

    diff_snippet = SECTION_SEPARATOR.join(
        f"File: {f.filename}\n{f.patch}" for f in capped if f.patch is not None
    )
    content_snippet = SECTION_SEPARATOR.join(
        f"// {f.filename}\n{f.content}" for f in capped if f.content is not None
    )

    return (
        "You are a senior software engineer reviewing a pull request. "
        "Below is the diff and file contents.\n"
        "\n"
        "Please:\n"
        "- Summarize the intent of the commit in 2-3 bullet points.\n"
        "- For each file, suggest improvements or note issues.\n"
        "- Highlight bugs, missing functionality, or bad practices.\n"
        "- Mention any security, logic, or performance issues.\n"
        "\n"
        "<<DIFF>>\n"
        f"{diff_snippet}\n"
        "\n"
        "<<FILES>>\n"
        f"{content_snippet}\n"
        "\n"
        "<<END>>\n"
    )


def build_label_prompt(title: str, description: str, filenames: Sequence[str]) -> str:
    """Build the instruction asking for up to three labels from the fixed vocabulary."""
    file_list = "\n".join(f"- {name}" for name in filenames)
    return (
        "You are a repo maintainer.\n"
        f"Title: {title}\n"
        f"Description: {description or ''}\n"
        "Files changed:\n"
        f"{file_list}\n"
        "\n"
        f"Suggest up to 3 labels (choose from: {', '.join(LABEL_VOCABULARY)}).\n"
        "Output a comma-separated list only.\n"
    )
