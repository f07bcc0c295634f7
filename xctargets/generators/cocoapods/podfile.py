# Podfile composition.
#
# The Podfile is Ruby; instead of searching it for substrings, it is read
# as a tree of do/end blocks. Each line is reduced to its code (strings and
# comments removed) and scanned for block keywords:
#
#   - `do` opens a block wherever it appears
#   - if/unless/while/until/case/begin/def/class/module open a block only
#     when they start a statement; as modifiers (`x if y`) they do not
#   - `end` closes the innermost open block

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from xctargets.details.versions import version_key

INDENT = "  "

_TARGET_LINE = re.compile(r"^\s*target\s+['\"]([^'\"]+)['\"]\s*(?:,.*)?\bdo\b")
_POST_INSTALL_LINE = re.compile(r"^\s*post_install\s+do\b")
_KEYWORD = re.compile(
    r"(?<![.:\w])(do|end|if|unless|while|until|case|begin|def|class|module)(?![\w?!])"
)
_STATEMENT_OPENERS = frozenset(
    {"if", "unless", "while", "until", "case", "begin", "def", "class", "module"}
)
_LOOP_OPENERS = frozenset({"while", "until"})
_PLATFORM_LINE = re.compile(
    r"(platform\s+:ios\s*,\s*"
    r"(?:podfile_properties\[['\"]ios\.deploymentTarget['\"]\]\s*\|\|\s*)?)"
    r"(['\"])([^'\"]+)(['\"])"
)
_TARGET_PLATFORM = re.compile(r"^\s*platform\s+:ios\s*,\s*['\"]([^'\"]+)['\"]")

HOST_FRAMEWORKS = "use_frameworks! :linkage => :static"

# post_install sections, rewritten as a whole on every run
DEPLOYMENT_FIX_START = "# [xctargets] extension deployment targets"
DEPLOYMENT_FIX_END = "# [xctargets] end of extension deployment targets"
FRAMEWORK_PATHS_START = "# [xctargets-start]"
FRAMEWORK_PATHS_END = "# [xctargets-end]"
COPIED_XCCONFIG_KEYS = (
    "FRAMEWORK_SEARCH_PATHS",
    "HEADER_SEARCH_PATHS",
    "OTHER_SWIFT_FLAGS",
    "SWIFT_INCLUDE_PATHS",
)


class PodfileFlavor(Enum):
    # Native code only, nothing inherited from the host's pods
    STANDALONE = "standalone"
    # Embeds the React Native runtime and resolves it through the host's pods
    REACT_NATIVE = "react-native"


@dataclass
class Block:
    kind: str  # "target", "post_install" or the opening keyword
    start: int  # line index of the opening line
    depth: int
    name: Optional[str] = None
    end: Optional[int] = None  # line index of the closing `end`
    children: List["Block"] = field(default_factory=list)

    def walk(self) -> Iterator["Block"]:
        yield self
        for child in self.children:
            yield from child.walk()


def _code_of(line: str) -> str:
    """Strip string literals and the trailing comment of a Ruby line."""
    code = []
    quote = None
    escaped = False
    for char in line:
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
                code.append(char)
            continue
        if char in ("'", '"'):
            quote = char
            code.append(char)
        elif char == "#":
            break
        else:
            code.append(char)
    return "".join(code)


def _statement_leading(code: str, position: int) -> bool:
    prefix = code[:position].rstrip()
    return prefix == "" or prefix.endswith((";", "=", "(", "||", "&&", "|", "then", "else"))


def _events(code: str) -> List[Tuple[str, str]]:
    events = []
    loop_pending = False
    for match in _KEYWORD.finditer(code):
        keyword = match.group(1)
        if keyword == "end":
            events.append(("close", keyword))
        elif keyword == "do":
            # `while cond do` shares the loop's block
            if loop_pending:
                loop_pending = False
                continue
            events.append(("open", keyword))
        elif _statement_leading(code, match.start()):
            events.append(("open", keyword))
            loop_pending = keyword in _LOOP_OPENERS
    return events


def parse_blocks(text: str) -> List[Block]:
    """Top-level blocks of a Podfile, nested blocks are their children.

    An `end` without an open block is ignored; blocks left open at the end
    of the file keep end=None.
    """
    roots: List[Block] = []
    stack: List[Block] = []
    for index, line in enumerate(text.splitlines()):
        code = _code_of(line)
        first_open = True
        for event, keyword in _events(code):
            if event == "close":
                if stack:
                    stack.pop().end = index
                continue
            block = Block(kind=keyword, start=index, depth=len(stack))
            if first_open:
                target = _TARGET_LINE.match(line)
                if target:
                    block.kind, block.name = "target", target.group(1)
                elif _POST_INSTALL_LINE.match(line):
                    block.kind = "post_install"
                first_open = False
            if stack:
                stack[-1].children.append(block)
            else:
                roots.append(block)
            stack.append(block)
    return roots


def _all_blocks(blocks: List[Block]) -> Iterator[Block]:
    for block in blocks:
        yield from block.walk()


def find_target_block(text: str, target_name: str) -> Optional[Block]:
    for block in _all_blocks(parse_blocks(text)):
        if block.kind == "target" and block.name == target_name:
            return block
    return None


def has_target_block(text: str, target_name: str) -> bool:
    return find_target_block(text, target_name) is not None


def uses_frameworks(text: str, target_name: str) -> bool:
    block = find_target_block(text, target_name)
    if block is None:
        return False
    lines = text.splitlines()
    end = block.end if block.end is not None else len(lines) - 1
    return any("use_frameworks!" in _code_of(line) for line in lines[block.start : end + 1])


def render_target_block(
    target_name: str,
    version: str,
    flavor: PodfileFlavor,
    indent: str = "",
    use_frameworks: bool = False,
) -> List[str]:
    body = []
    if flavor == PodfileFlavor.REACT_NATIVE:
        body.append(f"platform :ios, '{version}'")
        body.append("inherit! :search_paths")
    else:
        if use_frameworks:
            body.append(HOST_FRAMEWORKS)
        body.append(f"platform :ios, '{version}'")
        body.append("inherit! :none")
    return (
        [f"{indent}target '{target_name}' do"]
        + [f"{indent}{INDENT}{line}" for line in body]
        + [f"{indent}end"]
    )


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _join(lines: List[str], original: str) -> str:
    result = "\n".join(lines)
    if original.endswith("\n") or not original:
        result += "\n"
    return result


def _own_lines(lines: List[str], block: Block) -> List[str]:
    """Body lines of a closed block, without the lines of nested blocks."""
    nested = set()
    for child in block.children:
        end = child.end if child.end is not None else len(lines) - 1
        nested.update(range(child.start, end + 1))
    return [lines[i] for i in range(block.start + 1, block.end) if i not in nested]


def declared_targets(text: str, flavor: PodfileFlavor) -> List[Tuple[str, str]]:
    """(name, platform version) of every target block written for a flavor.

    Standalone blocks sit at the top level with `inherit! :none`, React
    Native blocks are nested and inherit the search paths. Blocks without
    their own `platform :ios` line are not ours.
    """
    standalone = flavor == PodfileFlavor.STANDALONE
    inherit = "inherit! :none" if standalone else "inherit! :search_paths"
    lines = text.splitlines()
    found = []
    for block in _all_blocks(parse_blocks(text)):
        if block.kind != "target" or block.end is None:
            continue
        if (block.depth == 0) != standalone:
            continue
        body = _own_lines(lines, block)
        if not any(_code_of(line).strip() == inherit for line in body):
            continue
        versions = [m.group(1) for m in map(_TARGET_PLATFORM.match, body) if m]
        if versions:
            found.append((block.name, versions[0]))
    return found


def target_block_in_place(
    text: str,
    target_name: str,
    version: str,
    flavor: PodfileFlavor,
    *,
    use_frameworks: bool = False,
) -> bool:
    """Whether the target's block already reads as it would be inserted."""
    block = find_target_block(text, target_name)
    if block is None or block.end is None:
        return False
    if (block.depth == 0) != (flavor == PodfileFlavor.STANDALONE):
        return False
    current = text.splitlines()[block.start : block.end + 1]
    expected = render_target_block(target_name, version, flavor, use_frameworks=use_frameworks)
    return [line.strip() for line in current] == [line.strip() for line in expected]


def insert_target_block(
    text: str,
    target_name: str,
    version: str,
    flavor: PodfileFlavor,
    *,
    use_frameworks: bool = False,
) -> str:
    """Insert a target block unless one with the same name exists.

    A standalone block becomes a sibling of the host, right after the
    `end` of the last top-level block. A React Native block is nested in
    the host: right before the post_install hook when there is one,
    otherwise before the closing `end` of the last top-level block. Either
    is appended to the file when the Podfile has no closed blocks at all.
    """
    if has_target_block(text, target_name):
        return text
    lines = text.splitlines()
    roots = parse_blocks(text)

    post_install = find_post_install(text)
    closed_roots = [b for b in roots if b.end is not None]
    if flavor == PodfileFlavor.STANDALONE and closed_roots:
        at = closed_roots[-1].end + 1
        insertion = [""] + render_target_block(target_name, version, flavor, "", use_frameworks)
    elif flavor == PodfileFlavor.REACT_NATIVE and post_install is not None:
        at = post_install.start
        indent = _indent_of(lines[at])
        insertion = render_target_block(target_name, version, flavor, indent, use_frameworks) + [""]
    elif flavor == PodfileFlavor.REACT_NATIVE and closed_roots:
        at = closed_roots[-1].end
        indent = _indent_of(lines[at]) + INDENT
        insertion = [""] + render_target_block(target_name, version, flavor, indent, use_frameworks)
    else:
        at = len(lines)
        insertion = ([""] if lines else []) + render_target_block(
            target_name, version, flavor, "", use_frameworks
        )
    lines[at:at] = insertion
    return _join(lines, text)


def remove_target_block(text: str, target_name: str) -> str:
    block = find_target_block(text, target_name)
    if block is None:
        return text
    if block.end is None:
        raise ValueError(f"could not find closing end for target '{target_name}'")
    lines = text.splitlines()
    start = block.start
    # take one separating blank line along
    if start > 0 and not lines[start - 1].strip():
        start -= 1
    del lines[start : block.end + 1]
    return _join(lines, text)


def ensure_host_uses_frameworks(text: str, host_name: str) -> str:
    """Link the host's pods as static frameworks, as React Native extensions need."""
    block = find_target_block(text, host_name)
    if block is None or uses_frameworks(text, host_name):
        return text
    lines = text.splitlines()
    indent = _indent_of(lines[block.start]) + INDENT
    lines[block.start + 1 : block.start + 1] = [f"{indent}{HOST_FRAMEWORKS}", ""]
    return _join(lines, text)


def find_post_install(text: str) -> Optional[Block]:
    return next((b for b in _all_blocks(parse_blocks(text)) if b.kind == "post_install"), None)


def _replace_section(text: str, start_marker: str, end_marker: str, body: List[str]) -> str:
    """Replace the marker-delimited section of the post_install hook.

    An existing section is replaced where it stands, a new one goes right
    before the hook's closing `end`. An empty body removes the section.
    Without a closed post_install hook a new section is not written.
    """
    lines = text.splitlines()
    stripped = [line.strip() for line in lines]
    at = None
    if start_marker in stripped:
        start = stripped.index(start_marker)
        if end_marker in stripped[start:]:
            del lines[start : stripped.index(end_marker, start) + 1]
            at = start
    if not body:
        return _join(lines, text)
    post_install = find_post_install("\n".join(lines))
    if post_install is None or post_install.end is None:
        return _join(lines, text)
    if at is None:
        at = post_install.end
    indent = _indent_of(lines[post_install.start]) + INDENT
    lines[at:at] = [f"{indent}{line}" for line in (start_marker, *body, end_marker)]
    return _join(lines, text)


def render_deployment_fix(extensions: List[Tuple[str, str]]) -> List[str]:
    body = ["installer.pods_project.targets.each do |target|"]
    for name, version in extensions:
        body += [
            f"  if target.name.include?('{name}')",
            "    target.build_configurations.each do |config|",
            f"      config.build_settings['IPHONEOS_DEPLOYMENT_TARGET'] = '{version}'",
            "      xcconfig_path = config.base_configuration_reference.real_path",
            "      if xcconfig_path && File.exist?(xcconfig_path)",
            "        xcconfig = File.read(xcconfig_path).gsub(/^IPHONEOS_DEPLOYMENT_TARGET = .*$/, '')",
            f'        File.write(xcconfig_path, xcconfig + "\\nIPHONEOS_DEPLOYMENT_TARGET = {version}\\n")',
            "      end",
            "    end",
            "  end",
        ]
    body.append("end")
    return body


def render_framework_paths_fix(extensions: List[Tuple[str, str]], host_name: str) -> List[str]:
    body = [
        f"host_target = installer.pods_project.targets.find {{ |t| t.name == 'Pods-{host_name}' }}",
        "installer.pods_project.targets.each do |target|",
    ]
    for name, version in extensions:
        body += [
            f"  if target.name.include?('{name}')",
            "    target.build_configurations.each do |config|",
            f"      config.build_settings['IPHONEOS_DEPLOYMENT_TARGET'] = '{version}'",
            "      host_config = host_target && host_target.build_configurations.find { |c| c.name == config.name }",
            "      if host_config && host_config.build_settings['FRAMEWORK_SEARCH_PATHS']",
            "        paths = Array(config.build_settings['FRAMEWORK_SEARCH_PATHS'] || '$(inherited)')",
            "        config.build_settings['FRAMEWORK_SEARCH_PATHS'] = paths | Array(host_config.build_settings['FRAMEWORK_SEARCH_PATHS'])",
            "      end",
            "      xcconfig_path = config.base_configuration_reference.real_path",
            "      if xcconfig_path && File.exist?(xcconfig_path)",
            "        xcconfig = File.read(xcconfig_path).gsub(/^IPHONEOS_DEPLOYMENT_TARGET = .*$/, '')",
            f'        xcconfig += "\\nIPHONEOS_DEPLOYMENT_TARGET = {version}\\n"',
            "        host_xcconfig_path = host_config && host_config.base_configuration_reference.real_path",
            "        if host_xcconfig_path && File.exist?(host_xcconfig_path)",
            "          host_xcconfig = File.read(host_xcconfig_path)",
            f"          %w[{' '.join(COPIED_XCCONFIG_KEYS)}].each do |key|",
            "            value = host_xcconfig[/^#{key} = (.+)$/, 1]",
            "            next unless value",
            '            xcconfig = xcconfig.gsub(/^#{key} = .*$/, \'\') + "\\n#{key} = #{value}\\n"',
            "          end",
            "        end",
            "        File.write(xcconfig_path, xcconfig)",
            "      end",
            "    end",
            "  end",
        ]
    body.append("end")
    return body


def ensure_extension_deployment_targets(text: str, extensions: List[Tuple[str, str]]) -> str:
    """Pin the deployment target of standalone extension pods after install."""
    body = render_deployment_fix(extensions) if extensions else []
    return _replace_section(text, DEPLOYMENT_FIX_START, DEPLOYMENT_FIX_END, body)


def ensure_react_native_framework_paths(
    text: str, extensions: List[Tuple[str, str]], host_name: str
) -> str:
    """Give nested React Native extension pods the host's framework search paths."""
    body = render_framework_paths_fix(extensions, host_name) if extensions else []
    return _replace_section(text, FRAMEWORK_PATHS_START, FRAMEWORK_PATHS_END, body)


def raise_platform(text: str, version: str) -> str:
    """Raise the `platform :ios` version, never lowering it."""
    match = _PLATFORM_LINE.search(text)
    if not match:
        return text
    if version_key(version) <= version_key(match.group(3)):
        return text
    quote = match.group(2)
    return text[: match.start()] + f"{match.group(1)}{quote}{version}{quote}" + text[match.end() :]
