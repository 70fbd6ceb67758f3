import pytest

from viqi_tiles.tilesource import (HostTileAddress, ServiceTileAddress,
                                   TileUrlResolver, expandTemplate, expandUrl,
                                   pickMirror)


def testExpandTemplate():
    url = expandTemplate('http://x/{z}/{x}/{y}/{s}', ServiceTileAddress(2, 3, 4, 256))
    assert url == 'http://x/2/3/4/256'


def testExpandTemplateServiceStyle():
    template = ('http://localhost:8080/image_service/UUID?slice=,,14,1&'
                'tile={z},{x},{y},{s}&format=jpeg')
    url = expandTemplate(template, ServiceTileAddress(0, 1, 2, 512))
    assert url.endswith('tile=0,1,2,512&format=jpeg')


def testExpandTemplateUnknownPlaceholder():
    url = expandTemplate('http://x/{z}/{w}/{x}', ServiceTileAddress(1, 2, 3, 256))
    assert url == 'http://x/1//2'


@pytest.mark.parametrize(('url', 'expected'), [
    (None, []),
    ('', []),
    ('http://x/{z}', ['http://x/{z}']),
    ('http://{a-c}.x/{z}', ['http://a.x/{z}', 'http://b.x/{z}', 'http://c.x/{z}']),
    ('http://t{1-3}.x/{z}', ['http://t1.x/{z}', 'http://t2.x/{z}', 'http://t3.x/{z}']),
    (['http://a/{z}', 'http://{0-1}.b/{z}'],
     ['http://a/{z}', 'http://0.b/{z}', 'http://1.b/{z}']),
])
def testExpandUrl(url, expected):
    assert expandUrl(url) == expected


def testPickMirror():
    assert pickMirror(HostTileAddress(2, 3, -5), 1) == 0
    assert pickMirror(HostTileAddress(2, 3, -5), 0) == 0
    assert pickMirror(HostTileAddress(2, 3, -5), 3) == 1
    for column in range(8):
        for row in range(-8, 0):
            assert 0 <= pickMirror(HostTileAddress(3, column, row), 4) < 4


def testPickMirrorSpreadsTiles():
    used = {pickMirror(HostTileAddress(2, column, -1), 3) for column in range(4)}
    assert len(used) > 1


def testResolver():
    resolver = TileUrlResolver.fromUrl('http://x/{z}/{x}/{y}/{s}', 5, 256)
    assert resolver.getTileUrl(HostTileAddress(2, 3, -5)) == 'http://x/2/3/4/256'
    assert resolver.getTileUrl((4, 0, -1)) == 'http://x/0/0/0/256'


def testResolverMirrors():
    resolver = TileUrlResolver.fromUrl('http://{a-c}.x/{z}/{x}/{y}', 5, 256)
    assert resolver.getTileUrl(HostTileAddress(2, 3, -5)) == 'http://b.x/2/3/4'
    # the same tile always resolves to the same mirror
    assert (resolver.getTileUrl(HostTileAddress(2, 3, -5)) ==
            resolver.getTileUrl(HostTileAddress(2, 3, -5)))


@pytest.mark.parametrize('address', [None, (1, 2), ('a', 'b', 'c'), 'abc'])
def testResolverNoUrl(address):
    resolver = TileUrlResolver.fromUrl('http://x/{z}/{x}/{y}/{s}', 5, 256)
    assert resolver.getTileUrl(address) is None


def testResolverNoTemplates():
    resolver = TileUrlResolver.fromUrl(None, 5, 256)
    assert resolver.getTileUrl(HostTileAddress(0, 0, -1)) is None
