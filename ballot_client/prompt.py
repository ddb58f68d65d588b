HELP = """
Available commands:
  help                         Show this help message
  who                          Show the principal this wallet is authenticated as
  owner                        Show the election administrator
  register_candidate <name>    (admin) Register a candidate
  open <seconds>               (admin) Open voting for the given duration
  close                        (admin) Close voting
  declare                      (admin) Declare the winner
  register                     Register yourself as a voter
  vote <candidate_id>          Cast your vote
  active                       Is voting currently active?
  remaining                    Seconds left in the voting window
  is_registered <principal>    Is the principal a registered voter?
  has_voted <principal>        Has the principal voted?
  total                        Total votes cast
  count                        Candidate counter (number of candidates + 1)
  candidate <id>               Show one candidate
  candidates                   List all candidates
  stats                        Voting statistics
  winner                       Candidate with the highest vote
  exit                         Exit the client
"""


def print_help():
    print(HELP)


def get_user_message():
    try:
        return input("> ")
    except EOFError:
        print("\nExiting.")
        return None


def split_command(message):
    parts = message.strip().split(maxsplit=1)
    if not parts:
        return None, []
    command = parts[0].lower()
    if len(parts) == 1:
        return command, []
    # candidate names keep their spaces
    if command == "register_candidate":
        return command, [parts[1]]
    return command, parts[1].split()
