from pprint import pformat


def loop_stack_repr(loop_stack):
    return [
        f"for ${variable} [{index}]"
        for variable, index in reversed(loop_stack)
    ]


class SheetDSLError(Exception):
    """Base Sheet DSL error"""

    def __init__(self, message, position=None, sheet=None, loop_stack=None, statement=None, anchors=None):
        super().__init__(message)
        self.message = message
        self.position = position
        self.sheet = sheet
        self.loop_stack = loop_stack
        self.statement = statement
        self.anchors = anchors

    def with_context(self, position=None, sheet=None, loop_stack=None, statement=None, anchors=None):
        """Fill in the context fields that are still missing and return self, for re-raising."""
        if self.position is None:
            self.position = position
        if self.sheet is None:
            self.sheet = sheet
        if self.loop_stack is None and loop_stack:
            self.loop_stack = [*loop_stack]
        if self.statement is None:
            self.statement = statement
        if self.anchors is None and anchors:
            self.anchors = dict(anchors)
        return self

    def __str__(self):
        segments = []
        if self.position is not None:
            segments.append(f"Position: line {self.position[0]}, column {self.position[1]}")
        if self.sheet is not None:
            segments.append(f"Sheet: {self.sheet!r}")
        if self.loop_stack:
            segments.append(f"Loop stack: {pformat(loop_stack_repr(self.loop_stack))}")
        if self.statement is not None:
            segments.append(f"Triggering statement: {self.statement}")
        if self.anchors:
            segments.append(f"Anchors already present: {pformat(self.anchors)}")
        additional_info = "\n".join(segments)

        full_message = [self.message]
        if additional_info:
            full_message.append(f"Additional info:\n{additional_info}")

        return "\n".join(full_message)


class TemplateSyntaxError(SheetDSLError):
    """The template text does not conform to the grammar."""

    def __init__(self, message, line=None, column=None, context=None):
        super().__init__(message, position=line is not None and (line, column) or None)
        self.line = line
        self.column = column
        self.context = context

    def __str__(self):
        result = super().__str__()
        if self.context:
            result = f"{result}\n{self.context}"
        return result


class UndeclaredReferenceError(SheetDSLError):
    """A format, anchor, style modifier or variable path refers to something that does not exist."""


class TypeMismatchError(SheetDSLError):
    """An operator, path segment, loop or cell was given a value of the wrong kind."""


class TemplateArithmeticError(SheetDSLError):
    """An invalid numeric operation, such as a division by zero."""


class MalformedDateError(SheetDSLError):
    """A date cell received something that is not an ISO-8601 timestamp."""


class DuplicateDeclarationError(SheetDSLError):
    """A format name was declared twice, or an anchor name twice within one sheet."""


class MovementError(SheetDSLError):
    """The cursor or a merge region left the sheet grid."""


class ExecutionError(SheetDSLError):
    """A sink failed while executing an instruction."""

    def __init__(self, message, instruction_num=None, instruction=None):
        super().__init__(message)
        self.instruction_num = instruction_num
        self.instruction = instruction

    def __str__(self):
        segments = [self.message]
        if self.instruction_num is not None:
            segments.append(f"Instruction num: {self.instruction_num}")
        if self.instruction is not None:
            segments.append(f"Triggering instruction: {self.instruction}")
        return "\n".join(segments)
