from modules.posture.snapshots import Snapshot, SnapshotBuffer


def test_buffer_is_bounded_and_most_recent_first():
	buf = SnapshotBuffer(max_items=8)
	for i in range(20):
		buf.add(b"img%d" % i, created_at=float(i))
		assert len(buf) <= 8
	items = buf.items()
	assert len(items) == 8
	assert [s.created_at for s in items] == [float(i) for i in range(19, 11, -1)]
	assert items[0].image == b"img19"


def test_get_and_clear():
	buf = SnapshotBuffer()
	first = buf.add(b"a", 1.0)
	buf.push(Snapshot(id=99, image=b"b", created_at=2.0))
	assert buf.get(first.id).image == b"a"
	assert buf.get(99).created_at == 2.0
	assert buf.get(12345) is None
	buf.clear()
	assert buf.items() == []
