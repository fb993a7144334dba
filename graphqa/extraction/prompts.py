"""Prompt templates for the LLM oracle."""

from langchain_core.prompts import PromptTemplate

ENTITY_PROMPT = PromptTemplate(
    input_variables=["text"],
    template="""Extract the named entities from the paragraph below.
Respond with a JSON array of strings and nothing else.

Example:
Text: Radio City is India's first private FM radio station and was started on 3 July 2001.
It plays Hindi, English and regional songs. In May 2008 it launched the music portal
PlanetRadiocity.com.

Entities:
["Radio City", "India", "3 July 2001", "Hindi", "English", "May 2008", "PlanetRadiocity.com"]

Text: {text}

Entities:
""",
)

TRIPLES_PROMPT = PromptTemplate(
    input_variables=["text", "entities"],
    template="""Build a fact graph from the paragraph and its named entities.
Respond with a JSON array of [subject, predicate, object] string triples and nothing else.

Requirements:
- Every triple mentions at least one, preferably two, of the named entities.
- Replace pronouns with the names they refer to.

Example:
Text: Radio City is India's first private FM radio station and was started on 3 July 2001.
It plays Hindi, English and regional songs. In May 2008 it launched the music portal
PlanetRadiocity.com.
Entities: ["Radio City", "India", "3 July 2001", "Hindi", "English", "May 2008", "PlanetRadiocity.com"]

Triples:
[
    ["Radio City", "located in", "India"],
    ["Radio City", "is", "private FM radio station"],
    ["Radio City", "started on", "3 July 2001"],
    ["Radio City", "plays songs in", "Hindi"],
    ["Radio City", "plays songs in", "English"],
    ["Radio City", "launched", "PlanetRadiocity.com"],
    ["PlanetRadiocity.com", "launched in", "May 2008"],
    ["PlanetRadiocity.com", "is", "music portal"]
]

Text: {text}
Entities: {entities}

Triples:
""",
)

NODE_SELECTION_PROMPT = PromptTemplate(
    input_variables=["question", "nodes", "max_nodes"],
    template="""We want to answer the question: "{question}"

Below is a list of graph nodes. Each node is a fact (subject, predicate, value)
together with the chunk it was extracted from. Choose up to {max_nodes} nodes whose
value is most likely to lead to the answer when explored next. Fewer hops are better.

Respond with a JSON array containing the chosen nodes, copied exactly, and nothing else.
Respond with [] if no node is useful.

Example:
Nodes:
[
    {{"subject": "Summer", "predicate": "takes place in", "value": "Colorado", "chunk": "chunk_0"}},
    {{"subject": "Radio City", "predicate": "located in", "value": "India", "chunk": "chunk_1"}},
    {{"subject": "Radio City", "predicate": "launched in", "value": "Summer 2001", "chunk": "chunk_2"}}
]
Question: What is the date of Radio City's launch?
Output:
[
    {{"subject": "Radio City", "predicate": "launched in", "value": "Summer 2001", "chunk": "chunk_2"}}
]

Nodes:
{nodes}

Question: {question}

Output:
""",
)

ANSWER_PROMPT = PromptTemplate(
    input_variables=["context", "question", "chunk_indices"],
    template="""Relevant excerpts from a document:

{context}

Answer this question: "{question}"

After every sentence of your answer, list the indices of the chunks that sentence
is based on, in this format:
[Sentence] {{chunk_indices: [x, y]}}

Example:
The cat is black. {{chunk_indices: [0, 2]}} It likes to play with yarn. {{chunk_indices: [1]}}

Answer clearly and concisely, using only the excerpts above.
Available chunk indices: {chunk_indices}
""",
)

CHUNK_ANALYSIS_PROMPT = PromptTemplate(
    input_variables=["chunk", "question"],
    template="""You are a critical reader. Here is a text chunk from a document:

"{chunk}"

Question: "{question}"

Decide whether the chunk contains information needed to answer the question.
Only mark it for later processing if you are very confident.

Respond with a JSON object and nothing else, with these fields:
- summary (string): one or two sentences on why the chunk is or is not relevant
- confidence (number between 0 and 1): how confident you are that the chunk is relevant
- save_for_later_processing (boolean): whether the chunk should be used for the answer
- relevant_lines (array of numbers): line numbers in the chunk holding relevant information
""",
)
