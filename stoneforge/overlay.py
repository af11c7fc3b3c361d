import cv2, numpy as np

from .mask import PixelMask


def draw_overlay(mask: PixelMask, ring, metrics):
    """PNG of the mask with the ordered ring and a metrics caption drawn over it."""
    vis = cv2.cvtColor(mask.to_image(), cv2.COLOR_GRAY2BGR)
    pts = np.round(np.asarray(ring, dtype=float)).astype(np.int32).reshape(-1, 1, 2)
    if len(pts):
        cv2.polylines(vis, [pts], True, (0,255,0), 1)
        for p in pts[:, 0]:
            cv2.circle(vis, (int(p[0]), int(p[1])), 2, (0,0,255), -1)
    txt = (f"pts={metrics.get('ring_points', len(pts))} | "
           f"tris={metrics.get('triangle_count', 0)} | {metrics.get('strategy', '')}")
    cv2.putText(vis, txt, (10,30), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255,0,0), 1, cv2.LINE_AA)
    ok, png = cv2.imencode(".png", vis)
    if not ok:
        raise RuntimeError("Failed to encode overlay PNG")
    return png.tobytes()
