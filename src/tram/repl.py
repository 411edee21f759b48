"""Interactive shell for tram. Uses cmd as backend."""

import cmd
import logging

from .errors import DslError, render_diagnostic, render_value
from .runtime import Interpreter, NIL

logger = logging.getLogger(__name__)

SHELL_COMMANDS = ("help", "?", "exit", "quit", "EOF")


class Shell(cmd.Cmd):
    """tram interpreter shell.

    Every line is executed in the same interpreter, so bindings persist
    for the session. Errors are reported and the session carries on.
    """
    intro = "tram interpreter\nType 'help' for more information, 'quit' to leave."
    prompt = "> "

    def __init__(self, interpreter: Interpreter = None, color: bool = True,
                 *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.interpreter = interpreter or Interpreter()
        self.color = color
        self.line_num = 0

    def default(self, line):
        """Executes a line of tram."""
        self.line_num += 1
        try:
            value = self.interpreter.execute(line, f"<stdin:{self.line_num}>")
        except DslError as e:
            print(render_diagnostic(e.diagnostic, self.color), file=self.stdout)
            return False
        if value is not NIL:
            print(render_value(repr(value), self.color), file=self.stdout)
        return False

    def onecmd(self, line):
        # Only exact shell commands go to cmd.Cmd; anything else, such as
        # "exit = 1" or "help(2)", is tram source
        stripped = line.strip()
        if not stripped:
            return self.emptyline()
        if stripped in SHELL_COMMANDS:
            return super().onecmd(stripped)
        return self.default(line)

    def do_help(self, arg):
        """Prints a short introduction."""
        print("Each line is a tram program; its value is printed unless it is nil.\n\n"
              "  let x = 2 ** 10             bind a variable\n"
              "  fn sq(n) n * n              define a function\n"
              "  if x > 1 then \"big\" else \"small\"\n\n"
              "Builtins: " + ", ".join(self.interpreter.registry.names()) + "\n"
              "Leave with 'quit', 'exit' or end-of-file.", file=self.stdout)

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return False

    def do_EOF(self, arg):
        """Exits interpreter."""
        print(file=self.stdout)
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        logger.debug("Leaving shell after %d line(s)", self.line_num)
        return True

    do_quit = do_exit


def run_shell(interpreter: Interpreter = None, color: bool = True,
              stdin=None, stdout=None) -> int:
    """Run the interactive loop until the user leaves."""
    shell = Shell(interpreter, color, stdin=stdin, stdout=stdout)
    if stdin is not None:
        shell.use_rawinput = False
        shell.intro = None
        shell.prompt = ""
    try:
        shell.cmdloop()
    except KeyboardInterrupt:
        print(file=shell.stdout)
    return 0
