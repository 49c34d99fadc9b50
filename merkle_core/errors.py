"""Fatal conditions raised by the tree and its builder.

None of these are retried: a malformed node table or an out-of-range index
leaves nothing sensible to continue with.
"""


class MerkleTreeError(Exception):
    pass


class MissingNode(MerkleTreeError):
    def __init__(self, digest, what='node'):
        self.digest = digest
        super().__init__(f'{what} does not exist: {digest}')


class NotInternal(MerkleTreeError):
    def __init__(self, digest, what='node'):
        self.digest = digest
        super().__init__(f'{what} does not have children: {digest}')


class IndexOutOfRange(MerkleTreeError):
    def __init__(self, index, height):
        self.index = index
        self.height = height
        super().__init__(f'leaf index {index} out of range for tree of height {height}')


class BuilderError(MerkleTreeError):
    pass
