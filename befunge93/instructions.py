"""
Befunge93 Instruction Table

Maps a cell character to the mnemonic the engine dispatches on. The set is
closed: every character outside the table is a NOP, and while string mode is
on every character except `"` decodes to STRING_PUSH.

    Char    Mnemonic      Stack effect / action
    0-9     PUSH_DIGIT    ( -- n )
    +       ADD           ( a b -- a+b )
    -       SUB           ( a b -- a-b )
    *       MUL           ( a b -- a*b )
    /       DIV           ( a b -- a/b )     truncates toward zero
    %       MOD           ( a b -- a%b )     sign of a
    !       NOT           ( a -- a==0 )
    `       GT            ( a b -- a>b )
    >       RIGHT         IP heads right
    <       LEFT          IP heads left
    ^       UP            IP heads up
    v       DOWN          IP heads down
    ?       RANDOM        IP heads a random way
    _       HIF           ( a -- )           left if a else right
    |       VIF           ( a -- )           up if a else down
    "       STRING        toggle string mode
    :       DUP           ( a -- a a )
    \\       SWAP          ( a b -- b a )
    $       POP           ( a -- )
    .       OUT_INT       ( a -- )           prints "a "
    ,       OUT_CHAR      ( a -- )           prints chr(a)
    #       BRIDGE        skip the next cell
    g       GET           ( x y -- c )
    p       PUT           ( v x y -- )
    &       IN_INT        ( -- n )
    ~       IN_CHAR       ( -- c )
    @       END           halt
"""

# ──────────────────────────────────────────────
# Mnemonics
# ──────────────────────────────────────────────

PUSH_DIGIT  = 'PUSH_DIGIT'
ADD         = 'ADD'
SUB         = 'SUB'
MUL         = 'MUL'
DIV         = 'DIV'
MOD         = 'MOD'
NOT         = 'NOT'
GT          = 'GT'
RIGHT       = 'RIGHT'
LEFT        = 'LEFT'
UP          = 'UP'
DOWN        = 'DOWN'
RANDOM      = 'RANDOM'
HIF         = 'HIF'
VIF         = 'VIF'
STRING      = 'STRING'
DUP         = 'DUP'
SWAP        = 'SWAP'
POP         = 'POP'
OUT_INT     = 'OUT_INT'
OUT_CHAR    = 'OUT_CHAR'
BRIDGE      = 'BRIDGE'
GET         = 'GET'
PUT         = 'PUT'
IN_INT      = 'IN_INT'
IN_CHAR     = 'IN_CHAR'
END         = 'END'
NOP         = 'NOP'
STRING_PUSH = 'STRING_PUSH'


# ──────────────────────────────────────────────
# Character → mnemonic
# ──────────────────────────────────────────────

OPCODES = {
    '+': ADD,
    '-': SUB,
    '*': MUL,
    '/': DIV,
    '%': MOD,
    '!': NOT,
    '`': GT,
    '>': RIGHT,
    '<': LEFT,
    '^': UP,
    'v': DOWN,
    '?': RANDOM,
    '_': HIF,
    '|': VIF,
    '"': STRING,
    ':': DUP,
    '\\': SWAP,
    '$': POP,
    '.': OUT_INT,
    ',': OUT_CHAR,
    '#': BRIDGE,
    'g': GET,
    'p': PUT,
    '&': IN_INT,
    '~': IN_CHAR,
    '@': END,
    ' ': NOP,
}
OPCODES.update({str(d): PUSH_DIGIT for d in range(10)})

# Keyed by code so the engine can decode grid cells without chr()
_CODE_TABLE = {ord(ch): mnem for ch, mnem in OPCODES.items()}

QUOTE = ord('"')


def decode(code: int, string_mode: bool = False) -> str:
    """Mnemonic for the cell `code` under the given IP mode."""
    if string_mode:
        return STRING if code == QUOTE else STRING_PUSH
    return _CODE_TABLE.get(code, NOP)


def is_instruction(ch: str) -> bool:
    """True for characters with a defined meaning outside string mode."""
    return ch in OPCODES and ch != ' '
