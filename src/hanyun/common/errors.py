"""异常体系：统一描述生成与导出阶段可能出现的失败。

分类：
- `EmptyResponse`：后端调用成功，但没有返回任何文本；
- `SchemaViolation`：返回了文本，但无法解析为约定的结构；
- `BackendUnavailable`：网络、鉴权等传输层失败（含缺少 API Key 的 `MissingCredential`）；
- `ExportFailed`：本地渲染或打包（PPT/Word/ZIP）时抛出异常。

生成类错误原样抛给调用方，不做本地重试；界面层（CLI/MCP）在操作边界统一捕获并转成提示信息。
"""


class HanyunError(Exception):
    """所有业务异常的基类。"""


class GenerationError(HanyunError):
    """调用生成式后端时发生的错误。"""


class EmptyResponse(GenerationError):
    """后端返回成功但没有任何内容。"""


class SchemaViolation(GenerationError):
    """后端返回的内容无法解析为预期的数据结构。"""


class BackendUnavailable(GenerationError):
    """后端不可用：网络错误、鉴权失败或配置缺失。"""


class MissingCredential(BackendUnavailable):
    """未配置 API Key，客户端无法构造。"""


class ExportFailed(HanyunError):
    """本地导出（课件、练习题、图片包）失败。"""
