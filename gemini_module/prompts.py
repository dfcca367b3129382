"""Prompt templates for description, transcription and report generation. Use .format() placeholders."""

# Appended to any prompt when the submitter gave free-form instructions.
USER_INSTRUCTIONS_BLOCK = "USER INSTRUCTIONS: {instructions}\n\n"

NO_INVENTED_METADATA = (
    "IMPORTANT: Do not guess the meeting time, date, location or any other metadata "
    "unless it is explicitly stated in the recording or clearly visible on screen."
)

AUDIO_DESCRIPTION_PROMPT = (
    "Listen to this audio and describe it in two paragraphs covering:\n\n"
    "1. The main topics discussed.\n"
    "2. Who is speaking, as far as you can tell: names if possible, roles, personalities. "
    "Refer to unnamed people as Speaker 1, Speaker 2 and so on.\n"
    "3. A three-sentence summary in the form 'This is a discussion between X (who ...) and Y (who ...) "
    "about ...'.\n\n"
    "{no_metadata}\n\n"
    "{instructions_block}File: {file_name}"
)

IMAGE_DESCRIPTION_PROMPT = (
    "These are screenshots taken from a meeting recording. Where possible, describe:\n\n"
    "1. The visible speakers: names (from captions or name tags) and appearance.\n"
    "2. The general mood and emotions of the people involved.\n"
    "3. Anything else on screen: shared slides, documents, applications.\n"
    "4. Anything else these frames tell you about the meeting.\n\n"
    "{no_metadata}\n\n"
    "{instructions_block}Files: {file_names}"
)

MERGE_DESCRIPTION_PROMPT = (
    "Descriptions:\n"
    "```\n"
    "{descriptions}\n"
    "```\n\n"
    "The descriptions above were produced independently from different parts of one recording "
    "(audio, screenshots). Reconcile any conflicts using your best judgement and write one clean, "
    "detailed description covering:\n"
    "1. Who took part, with names where possible.\n"
    "2. What each participant is like: role, job, appearance, emotional state.\n"
    "3. What was discussed, shown or covered.\n"
    "4. If this is not a meeting, whatever else helps describe what the recording is.\n\n"
    "{instructions_block}"
    "{no_metadata} Only include facts you can observe in the provided content."
)

TRANSCRIPTION_PROMPT = (
    "This is part {position} of {total} of the audio of a meeting.\n\n"
    "General description of the meeting:\n"
    "{description}\n\n"
    "{previous_block}"
    "Transcribe this audio segment with speaker diarization. Identify every speaker and use real "
    "names when they can be inferred. Annotate tone, emotion and pauses in parentheses, for example "
    "(hesitant) or (long pause). Format every turn as:\n"
    "~[Speaker Name]~: Transcribed text\n\n"
    "{instructions_block}{continue_hint}"
)

TRANSCRIPTION_PREVIOUS_BLOCK = "Transcription of the end of the previous part:\n\n...{previous}\n...\n\n"

TRANSCRIPTION_CONTINUE_HINT = "Continue from where the previous transcription stopped."

REPORT_CONTEXT = (
    "Meeting descriptions:\n"
    "```\n"
    "{descriptions}\n"
    "```\n\n"
    "Transcript:\n"
    "```\n"
    "{transcript}\n"
    "```\n\n"
)

REPORT_HEADINGS_PROMPT = (
    REPORT_CONTEXT + "{instructions_block}"
    "Above are the descriptions and the transcript of a meeting or call. We are turning them into a "
    "one-page summary document. Propose the headings and subheadings of that report, each with a "
    "one-sentence description. The report must cover, in their own sections or combined:\n"
    "* Useful contacts: companies, people, links\n"
    "* Action items\n"
    "* Overall flow of the meeting: what was discussed and for how long\n"
    "* Arguments, pitches or anything presented\n"
    "* Participant profiles\n\n"
    "Respond with JSON matching the provided schema: an object with a `sections` list, each section "
    "having `title`, `description` and a `subsections` list of `title`/`description` objects."
)

REPORT_SECTION_PROMPT = (
    REPORT_CONTEXT + "{instructions_block}"
    "Above are the descriptions and the transcript of a meeting or call. We are writing a one-page "
    "summary report with these sections:\n"
    "{outline}\n\n"
    "Write this specific section in Markdown:\n"
    "{section_title}: {section_description}\n"
    "{subsections}"
    "Respond with the content of this section only: no title, no description, no foreword. "
    "Assume the other sections are written separately."
)

REPORT_PLAIN_TEXT_SUFFIX = (
    "\n\nPlease provide the content for this section in plain text format, not as JSON or outline. "
    "Write it as a narrative paragraph."
)


def instructions_block(instructions: str | None) -> str:
    """Render the user instructions block, or nothing."""
    if not instructions or not instructions.strip():
        return ""
    return USER_INSTRUCTIONS_BLOCK.format(instructions=instructions.strip())


def build_audio_description_prompt(file_name: str, instructions: str | None = None) -> str:
    return AUDIO_DESCRIPTION_PROMPT.format(
        no_metadata=NO_INVENTED_METADATA,
        instructions_block=instructions_block(instructions),
        file_name=file_name,
    )


def build_image_description_prompt(file_names: list[str], instructions: str | None = None) -> str:
    return IMAGE_DESCRIPTION_PROMPT.format(
        no_metadata=NO_INVENTED_METADATA,
        instructions_block=instructions_block(instructions),
        file_names=", ".join(file_names),
    )


def build_merge_description_prompt(descriptions: list[str], instructions: str | None = None) -> str:
    return MERGE_DESCRIPTION_PROMPT.format(
        descriptions="\n\n".join(descriptions),
        no_metadata=NO_INVENTED_METADATA,
        instructions_block=instructions_block(instructions),
    )


def build_transcription_prompt(
    description: str,
    position: int,
    total: int,
    previous: str = "",
    instructions: str | None = None,
) -> str:
    """Prompt for chunk ``position`` (1-based) of ``total``; ``previous`` is the carried context."""
    return TRANSCRIPTION_PROMPT.format(
        position=position,
        total=total,
        description=description,
        previous_block=TRANSCRIPTION_PREVIOUS_BLOCK.format(previous=previous) if previous else "",
        instructions_block=instructions_block(instructions),
        continue_hint=TRANSCRIPTION_CONTINUE_HINT if previous else "",
    )


def build_report_headings_prompt(descriptions: str, transcript: str, instructions: str | None = None) -> str:
    return REPORT_HEADINGS_PROMPT.format(
        descriptions=descriptions,
        transcript=transcript,
        instructions_block=instructions_block(instructions),
    )


def build_report_section_prompt(
    outline: list[tuple[str, str]],
    section_title: str,
    section_description: str,
    descriptions: str,
    transcript: str,
    subsections: list[tuple[str, str]] | None = None,
    instructions: str | None = None,
) -> str:
    """Prompt for one report section; ``outline`` is the full ordered (title, description) list."""
    outline_text = "\n".join(f"{i}. {title} : {desc}" for i, (title, desc) in enumerate(outline, 1))
    subsections_text = ""
    if subsections:
        lines = "\n".join(f"- {title}: {desc}" for title, desc in subsections)
        subsections_text = f"Cover these subsections:\n{lines}\n\n"
    else:
        subsections_text = "\n"
    return REPORT_SECTION_PROMPT.format(
        descriptions=descriptions,
        transcript=transcript,
        instructions_block=instructions_block(instructions),
        outline=outline_text,
        section_title=section_title,
        section_description=section_description,
        subsections=subsections_text,
    )
