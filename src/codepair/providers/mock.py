"""Offline backend answering from canned per-language snippets.

Used as the default fallback and for demos and tests. Deterministic: the
same prompt always yields the same completion.
"""

import logging
import re
import time

from codepair.providers.base import GenerationOptions, ModelProvider
from codepair.providers.errors import ProviderError
from codepair.suggestions.prompts import ENGLISH_PROMPT_MARKER

logger = logging.getLogger(__name__)

DESCRIPTION_RE = re.compile(r'Convert this English description to \S+ code:\s*"([^"]+)"', re.IGNORECASE)

# Completion snippets: function, conditional, collection, error handling
COMPLETIONS = {
    "javascript": [
        "const result = a + b;\nreturn result;",
        "if (condition) {\n  return true;\n}",
        "const items = array.map(item => item.value);",
        "try {\n  // implementation\n} catch (error) {\n  console.error(error);\n}",
    ],
    "python": [
        "def calculate_sum(a, b):\n    return a + b",
        "if condition:\n    return True",
        "items = [item.value for item in array]",
        'try:\n    # implementation\n    pass\nexcept Exception as e:\n    print(f"Error: {e}")',
    ],
    "typescript": [
        "const result: number = a + b;\nreturn result;",
        "if (condition) {\n  return true;\n}",
        "const items: string[] = array.map((item: Item) => item.value);",
        "interface User {\n  id: number;\n  name: string;\n}",
    ],
}

COMPLETION_CUES = [
    re.compile(r"\b(function|def)\b"),
    re.compile(r"\b(if|condition)\b"),
    re.compile(r"\b(map|array|list)\b"),
    re.compile(r"\b(try|error)\b"),
]

# English description phrase -> code, checked in order
ENGLISH_TO_CODE = {
    "javascript": {
        "function that adds": "function add(a, b) {\n  return a + b;\n}",
        "function that calculates": "function calculate(input) {\n  const result = input * 2;\n  return result;\n}",
        "create a function": "function myFunction() {\n  return result;\n}",
        "create a class": "class MyClass {\n  constructor() {\n    this.value = null;\n  }\n\n  method() {\n    return this.value;\n  }\n}",
        "loop through": "for (let i = 0; i < array.length; i++) {\n  console.log(array[i]);\n}",
        "iterate over": "array.forEach(item => {\n  console.log(item);\n});",
        "check if": "if (condition) {\n  return true;\n} else {\n  return false;\n}",
        "validate": 'function validate(input) {\n  if (!input) {\n    throw new Error("Invalid input");\n  }\n  return true;\n}',
        "sort array": "array.sort((a, b) => a - b);",
        "filter array": "const filtered = array.filter(item => item.condition);",
        "map array": "const mapped = array.map(item => item.property);",
        "fetch data": 'async function fetchData(url) {\n  try {\n    const response = await fetch(url);\n    return await response.json();\n  } catch (error) {\n    console.error("Fetch error:", error);\n  }\n}',
        "async function": "async function asyncFunction() {\n  const result = await someAsyncOperation();\n  return result;\n}",
        "fibonacci": "function fibonacci(n) {\n  if (n <= 1) {\n    return n;\n  }\n  return fibonacci(n - 1) + fibonacci(n - 2);\n}",
    },
    "python": {
        "function that adds": 'def add(a, b):\n    """Add two numbers"""\n    return a + b',
        "function that calculates": 'def calculate(input_value):\n    """Calculate result"""\n    return input_value * 2',
        "create a function": 'def my_function():\n    """Function description"""\n    return result',
        "create a class": "class MyClass:\n    def __init__(self):\n        self.value = None\n\n    def method(self):\n        return self.value",
        "loop through": "for item in items:\n    print(item)",
        "iterate over": 'for i, item in enumerate(items):\n    print(f"{i}: {item}")',
        "check if": "if condition:\n    return True\nelse:\n    return False",
        "validate": 'def validate(input_data):\n    """Validate input data"""\n    if not input_data:\n        raise ValueError("Invalid input")\n    return True',
        "sort list": "sorted_list = sorted(my_list)",
        "filter list": "filtered_list = [item for item in my_list if condition]",
        "read file": 'with open("filename.txt", "r") as file:\n    content = file.read()',
        "write file": 'with open("filename.txt", "w") as file:\n    file.write(content)',
        "fibonacci": "def fibonacci(n):\n    if n <= 1:\n        return n\n    return fibonacci(n - 1) + fibonacci(n - 2)",
    },
    "typescript": {
        "function that adds": "function add(a: number, b: number): number {\n  return a + b;\n}",
        "create interface": "interface MyInterface {\n  property: string;\n  method(): void;\n}",
        "create a function": "function myFunction(): ReturnType {\n  return result;\n}",
        "create a class": "class MyClass {\n  private property: string;\n\n  constructor(property: string) {\n    this.property = property;\n  }\n}",
        "async function": "async function asyncFunction(): Promise<ReturnType> {\n  const result = await someAsyncOperation();\n  return result;\n}",
    },
    "cpp": {
        "create function for fibonacci": '#include <iostream>\nusing namespace std;\n\nint fibonacci(int n) {\n    if (n <= 1) {\n        return n;\n    }\n    return fibonacci(n - 1) + fibonacci(n - 2);\n}\n\nint main() {\n    int num = 10;\n    cout << "Fibonacci of " << num << " is: " << fibonacci(num) << endl;\n    return 0;\n}',
        "fibonacci": "int fibonacci(int n) {\n    if (n <= 1) {\n        return n;\n    }\n    return fibonacci(n - 1) + fibonacci(n - 2);\n}",
        "function that adds": "int add(int a, int b) {\n    return a + b;\n}",
        "function that calculates": "int calculate(int input) {\n    int result = input * 2;\n    return result;\n}",
        "create a function": "int myFunction(int param) {\n    return param;\n}",
        "create a class": "class MyClass {\nprivate:\n    int value;\n\npublic:\n    MyClass(int val) : value(val) {}\n\n    int getValue() {\n        return value;\n    }\n};",
        "loop through array": 'int arr[] = {1, 2, 3, 4, 5};\nint size = sizeof(arr) / sizeof(arr[0]);\n\nfor (int i = 0; i < size; i++) {\n    cout << arr[i] << " ";\n}',
        "sort array": "#include <algorithm>\n#include <vector>\n\nvector<int> arr = {5, 2, 8, 1, 9};\nsort(arr.begin(), arr.end());",
    },
    "c": {
        "fibonacci": "int fibonacci(int n) {\n    if (n <= 1) {\n        return n;\n    }\n    return fibonacci(n - 1) + fibonacci(n - 2);\n}",
        "function that adds": "int add(int a, int b) {\n    return a + b;\n}",
        "create a function": "int myFunction(int param) {\n    return param;\n}",
        "loop through array": 'int arr[] = {1, 2, 3, 4, 5};\nint size = sizeof(arr) / sizeof(arr[0]);\n\nfor (int i = 0; i < size; i++) {\n    printf("%d ", arr[i]);\n}',
    },
    "java": {
        "fibonacci": "public static int fibonacci(int n) {\n    if (n <= 1) {\n        return n;\n    }\n    return fibonacci(n - 1) + fibonacci(n - 2);\n}",
        "function that adds": "public int add(int a, int b) {\n    return a + b;\n}",
        "create a function": "public int myFunction(int param) {\n    return param;\n}",
        "create a class": "public class MyClass {\n    private int value;\n\n    public MyClass(int value) {\n        this.value = value;\n    }\n}",
        "loop through array": "int[] arr = {1, 2, 3, 4, 5};\n\nfor (int i = 0; i < arr.length; i++) {\n    System.out.println(arr[i]);\n}",
    },
}

# Looser single-word matches, tried after the phrases above
KEY_TERMS = {
    "javascript": {
        "function": "function myFunction() {\n  return result;\n}",
        "class": "class MyClass {\n  constructor() {\n    this.value = null;\n  }\n}",
        "loop": "for (let i = 0; i < array.length; i++) {\n  console.log(array[i]);\n}",
        "add": "function add(a, b) {\n  return a + b;\n}",
    },
    "python": {
        "function": 'def my_function():\n    """Function description"""\n    return result',
        "class": "class MyClass:\n    def __init__(self):\n        pass",
        "loop": "for item in items:\n    print(item)",
        "add": "def add(a, b):\n    return a + b",
    },
    "cpp": {
        "function": "int myFunction(int param) {\n    return param;\n}",
        "add": "int add(int a, int b) {\n    return a + b;\n}",
        "loop": 'for (int i = 0; i < 10; i++) {\n    cout << i << " ";\n}',
    },
}

DEFAULT_ENGLISH = {
    "javascript": "// Generated from English description\nfunction generatedFunction() {\n  return result;\n}",
    "python": '# Generated from English description\ndef generated_function():\n    """Generated function"""\n    return result',
    "typescript": "// Generated from English description\nfunction generatedFunction(): any {\n  return result;\n}",
}


def extract_description(prompt: str) -> str:
    match = DESCRIPTION_RE.search(prompt)
    return match.group(1).lower() if match else ""


def english_to_code(prompt: str, language: str) -> str:
    """Pick a canned implementation for an English-to-code prompt."""
    haystack = extract_description(prompt) or prompt.lower()

    for table in (ENGLISH_TO_CODE, KEY_TERMS):
        patterns = table.get(language) or table["javascript"]
        for phrase, code in patterns.items():
            if phrase in haystack:
                logger.debug("Mock matched %r for %s", phrase, language)
                return code

    return DEFAULT_ENGLISH.get(language, "// Generated code from English description")


def complete_code(prompt: str, language: str) -> str:
    responses = COMPLETIONS.get(language) or COMPLETIONS["javascript"]
    lowered = prompt.lower()
    for cue, response in zip(COMPLETION_CUES, responses):
        if cue.search(lowered):
            return response
    return responses[0]


class MockProvider(ModelProvider):
    name = "mock"

    def __init__(self, delay: float = 0.0, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay
        self.should_error = False
        self.extra_responses: dict[str, list[str]] = {}
        self.calls = 0

    def simulate_error(self, should_error: bool = True) -> None:
        self.should_error = should_error

    def add_mock_response(self, language: str, response: str) -> None:
        """Queue a response returned ahead of the canned tables."""
        self.extra_responses.setdefault(language, []).append(response)

    def generate_completion(self, prompt: str, options: GenerationOptions | None = None) -> list[str]:
        if self.should_error:
            raise ProviderError("Mock provider error simulation", self.name)
        return super().generate_completion(prompt, options)

    def _generate(self, prompt: str, options: GenerationOptions) -> list[str]:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)

        queued = self.extra_responses.get(options.language)
        if queued:
            return [queued.pop(0)]
        if ENGLISH_PROMPT_MARKER.lower() in prompt.lower():
            return [english_to_code(prompt, options.language)]
        return [complete_code(prompt, options.language)]
