# ferris_art.py

ascii_art_dict = {
    "full": [
        r"        _~^~^~_        ",
        r"    \) /  o o  \ (/    ",
        r"      '_   -   _'      ",
        r"      / '-----' \      ",
        r"     /           \     ",
        r"    /  /       \  \    ",
        r"   (  |         |  )   ",
        r"    \_|         |_/    ",
    ],
    "minimal": [
        r"   _~^~_   ",
        r" \)/o o\(/ ",
        r"  '- ^ -'  ",
    ],
}

# Vector Ferris, rendered with cairosvg on the raster path.
FERRIS_SVG = """\
<svg xmlns="http://www.w3.org/2000/svg" width="120" height="80" viewBox="0 0 120 80">
  <polygon fill="#a52b00" points="22,52 8,66 12,70 28,58"/>
  <polygon fill="#a52b00" points="30,58 20,74 25,76 36,62"/>
  <polygon fill="#a52b00" points="98,52 112,66 108,70 92,58"/>
  <polygon fill="#a52b00" points="90,58 100,74 95,76 84,62"/>
  <polygon fill="#f74c00" points="24,40 10,24 14,20 30,34"/>
  <polygon fill="#f74c00" points="96,40 110,24 106,20 90,34"/>
  <circle fill="#f74c00" cx="12" cy="16" r="9"/>
  <circle fill="#f74c00" cx="108" cy="16" r="9"/>
  <polygon fill="#ffffff" points="6,6 12,16 2,14"/>
  <polygon fill="#ffffff" points="114,6 108,16 118,14"/>
  <polygon fill="#f74c00" points="26,30 34,22 42,28 50,20 60,26 70,20 78,28 86,22 94,30"/>
  <ellipse fill="#f74c00" cx="60" cy="46" rx="38" ry="20"/>
  <circle fill="#ffffff" cx="50" cy="40" r="6"/>
  <circle fill="#ffffff" cx="70" cy="40" r="6"/>
  <circle fill="#000000" cx="51" cy="41" r="3"/>
  <circle fill="#000000" cx="71" cy="41" r="3"/>
  <rect fill="#000000" x="52" y="52" width="16" height="3"/>
</svg>
"""


def _rstrip_lines(lines):
    return [ln.rstrip("\n") for ln in lines]


def get_ascii(key: str):
    """Return the art block for "full" or "minimal" (case-insensitive)."""
    if key in ascii_art_dict:
        return _rstrip_lines(ascii_art_dict[key])
    lk = key.lower()
    for k, v in ascii_art_dict.items():
        if k.lower() == lk:
            return _rstrip_lines(v)
    return []


def art_width(lines):
    return max((len(ln) for ln in lines), default=0)


def pad_block(lines, width=None):
    """Pad (or trim) every line to a common width so the text column lines up.
    If width is None, uses the widest line.
    """
    if not lines:
        return []
    w = art_width(lines) if width is None else max(0, width)
    return [ln.ljust(w)[:w] for ln in _rstrip_lines(lines)]
